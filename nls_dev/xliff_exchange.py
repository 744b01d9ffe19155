"""
Export of nls bundles to XLIFF and import of translated XLIFF back into
`*.i18n.json` files.
"""
import asyncio
import json
import logging
import os
import posixpath
from collections import deque
from typing import AsyncIterable, AsyncIterator, Deque, Dict, Iterable, Iterator, List, Optional, Union

from nls_dev.message_bundle import Language, normalize_path
from nls_dev.nls_file import (
    I18N_JSON,
    NLS_METADATA_FILE,
    NLS_METADATA_HEADER_FILE,
    PACKAGE_NLS_JSON,
    XLF_EXTENSION,
    NlsFile,
)
from nls_dev.xliff import XLF, ParsedXLF

logger = logging.getLogger(__name__)

PACKAGE_ORIGINAL = 'package'


def create_xlf_files(
        files: Iterable[NlsFile],
        project_name: str,
        extension_name: str,
        language: Optional[Language] = None
) -> Iterator[NlsFile]:
    """
    Build one XLIFF document from the package table and the bundled metadata.

    Recognized inputs are `package.nls.json`, `nls.metadata.header.json`,
    `nls.metadata.json` and, when a language is given,
    `package.nls.<language>.json` and `nls.bundle.<language>.json`. Other
    files pass through.

    Args:
        files: Incoming records.
        project_name: Folder of the emitted document.
        extension_name: File name stem of the emitted document.
        language: Target language whose translations are added as `<target>`.

    Yields:
        Unrecognized files as they arrive, then
        `<project_name>/<extension_name>[.<language>].xlf` if anything was added.

    Raises:
        ValueError: If a file has no contents or a translation does not match
            its original.
    """
    language_id = language.id if language else None
    xlf: Optional[XLF] = None
    header: Optional[Dict] = None
    data: Optional[Dict] = None
    package_bundle: Optional[Dict] = None
    bundle: Optional[Dict] = None

    def get_xlf() -> XLF:
        nonlocal xlf
        if xlf is None:
            xlf = XLF(project_name, language_id)
        return xlf

    for file in files:
        basename = file.basename
        recognized = basename in (PACKAGE_NLS_JSON, NLS_METADATA_FILE, NLS_METADATA_HEADER_FILE) or (
            language_id and basename in (f'package.nls.{language_id}.json', f'nls.bundle.{language_id}.json'))
        if not recognized:
            yield file
            continue
        if not file.is_buffer():
            raise ValueError(f"File {file.path} is not a buffer")

        if basename == PACKAGE_NLS_JSON:
            table = file.json()
            keys = list(table)
            messages = [
                table[key] if table[key] is not None else f"Unknown message for key: {key}"
                for key in keys
            ]
            get_xlf().add_file(PACKAGE_ORIGINAL, keys, messages)
        elif basename == f'package.nls.{language_id}.json':
            package_bundle = file.json()
        elif basename == NLS_METADATA_FILE:
            data = file.json()
        elif basename == f'nls.bundle.{language_id}.json':
            bundle = file.json()
        else:
            header = file.json()

    if language and xlf is not None and xlf.has_file(PACKAGE_ORIGINAL):
        xlf.set_language_package(PACKAGE_ORIGINAL, package_bundle)

    if header and data is not None:
        out_dir = normalize_path(header['outDir'])
        for module, file_content in data.items():
            # XLIFF originals always use forward slashes.
            file_name = normalize_path(module)
            file_path = posixpath.join(out_dir, file_name)
            get_xlf().add_file(file_path, file_content['keys'], file_content['messages'])
            if language and xlf.has_file(file_path):
                _set_language_target(xlf, file_path, bundle.get(file_name) if bundle else None)

    if xlf is not None and xlf.files:
        suffix = f'.{language_id}' if language_id else ''
        logger.info("Created XLIFF document for %s with %d file group(s).", extension_name, len(xlf.files))
        yield NlsFile(
            path=os.path.join(project_name, f'{extension_name}{suffix}{XLF_EXTENSION}'),
            contents=xlf.to_string().encode('utf-8'),
        )


def _set_language_target(xlf: XLF, original: str, translation: Optional[Union[List[str], Dict[str, str]]]) -> None:
    if isinstance(translation, dict):
        xlf.set_language_package(original, translation)
    else:
        xlf.set_language_bundle(original, translation)


def create_i18n_file(
        folder_name: Optional[str],
        original_file_path: str,
        messages: Dict[str, str],
        prolog: Union[str, List[str]] = ''
) -> NlsFile:
    """
    Render the `*.i18n.json` file for one parsed XLIFF file group.

    Args:
        folder_name: Language folder, or None to write without a subfolder.
        original_file_path: The `original` attribute of the file group.
        messages: Key to translated text.
        prolog: Literal text (or lines) written before the JSON body.
    """
    header = '\n'.join(prolog) + '\n' if isinstance(prolog, list) else prolog
    body = json.dumps(messages, ensure_ascii=False, indent='\t').replace('\r\n', '\n')
    file_name = f'{original_file_path}{I18N_JSON}'
    return NlsFile(
        path=os.path.join(folder_name, file_name) if folder_name else file_name,
        contents=(header + body).encode('utf-8'),
    )


async def _aiter_files(files: Union[Iterable[NlsFile], AsyncIterable[NlsFile]]) -> AsyncIterator[NlsFile]:
    if hasattr(files, '__aiter__'):
        async for file in files:
            yield file
    else:
        for file in files:
            yield file


async def _parse_xlf(xlf_file: NlsFile, force_language: bool) -> List[ParsedXLF]:
    logger.debug("Parsing %s", xlf_file.path)
    return await asyncio.to_thread(XLF.parse, xlf_file.text(), force_language)


async def prepare_json_files(
        xlf_files: Union[Iterable[NlsFile], AsyncIterable[NlsFile]],
        languages: Optional[List[Language]] = None,
        prolog: Union[str, List[str]] = ''
) -> AsyncIterator[NlsFile]:
    """
    Turn translated XLIFF documents into `*.i18n.json` files.

    Every incoming document is parsed in its own task as soon as it arrives.
    Results are yielded in arrival order, and the generator only finishes
    once every parse has completed.

    Args:
        xlf_files: Sync or async stream of XLIFF records, of any length.
        languages: Configured languages. When given, documents must carry a
            target language and only translated units are kept; each
            language's folder name (if any) prefixes the output path.
        prolog: Literal text (or lines) prepended to every output file.

    Raises:
        XlfParseError: If any document cannot be imported. Outstanding
            parses are cancelled.
    """
    force_language = bool(languages)
    folder_names = {language.id.lower(): language.folder_name for language in languages or []}
    pending: Deque[asyncio.Task] = deque()

    def render(parsed_files: List[ParsedXLF]) -> Iterator[NlsFile]:
        for parsed in parsed_files:
            folder_name = folder_names.get(parsed.language)
            yield create_i18n_file(folder_name, parsed.original_file_path, parsed.messages, prolog)

    try:
        async for xlf_file in _aiter_files(xlf_files):
            pending.append(asyncio.create_task(_parse_xlf(xlf_file, force_language)))
            while pending and pending[0].done():
                for i18n_file in render(pending.popleft().result()):
                    yield i18n_file
        while pending:
            parsed_files = await pending[0]
            pending.popleft()
            for i18n_file in render(parsed_files):
                yield i18n_file
    finally:
        for task in pending:
            task.cancel()
        # Retrieves failures of sibling parses so none is reported as unhandled.
        await asyncio.gather(*pending, return_exceptions=True)
