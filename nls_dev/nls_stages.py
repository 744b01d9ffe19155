"""
Pipeline stages for nls message bundles.

Every stage is a generator taking an iterable of NlsFile records and yielding
records downstream. Files a stage does not handle are passed through
unchanged and in order. Stages that aggregate (metadata bundling, language
bundling) only emit their results once the input is exhausted.
"""
import json
import logging
import os
import re
from typing import Callable, Dict, Iterable, Iterator, List, Optional

from nls_dev.localized_messages import create_localized_messages
from nls_dev.message_bundle import (
    AnalysisResult,
    Language,
    MessageBundle,
    SingleMetaDataFile,
    bundle_to_key_value_pair,
    is_message_bundle,
    is_single_metadata_file,
    normalize_path,
    remove_path_prefix,
    resolve_message_bundle,
)
from nls_dev.metadata_bundler import MetaDataBundler
from nls_dev.nls_file import (
    I18N_JSON,
    NLS_JSON,
    NLS_METADATA_FILE,
    NLS_METADATA_HEADER_FILE,
    NLS_METADATA_JSON,
    PACKAGE_NLS_JSON,
    NlsFile,
    dump_json,
)

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = 'en'

SourceAnalyzer = Callable[[str, Optional[dict]], AnalysisResult]

_LANGUAGE_FRAGMENT_PATTERN = re.compile(r'.nls\.(?:(.*)\.)?json$')
_MODULE_KEY_PATTERN = re.compile(r'(.*)\.nls\.(?:.*\.)?json$', re.DOTALL)


def _require_buffer(file: NlsFile, action: str) -> None:
    if not file.is_buffer():
        raise ValueError(f"Failed to {action} file: {file.relative}")


def _bundle_files(file: NlsFile, analysis: AnalysisResult) -> List[NlsFile]:
    bundle = analysis.bundle
    if bundle is None:
        return []
    file_path = os.path.splitext(file.path)[0]
    metadata = SingleMetaDataFile(
        keys=bundle.keys,
        messages=bundle.messages,
        file_path=remove_path_prefix(file_path, file.base),
    )
    return [
        NlsFile(path=file_path + NLS_JSON, base=file.base, contents=dump_json(bundle.messages)),
        NlsFile(path=file_path + NLS_METADATA_JSON, base=file.base, contents=dump_json(metadata.to_json())),
    ]


def _analyze(file: NlsFile, analyzer: SourceAnalyzer, source_map: Optional[dict], action: str) -> AnalysisResult:
    _require_buffer(file, 'read')
    analysis = analyzer(file.text(), source_map)
    if analysis.errors:
        for error in analysis.errors:
            logger.error("%s%s", file.relative, error)
        raise ValueError(f"Failed to {action} file: {file.path}")
    return analysis


def rewrite_localize_calls(files: Iterable[NlsFile], analyzer: SourceAnalyzer) -> Iterator[NlsFile]:
    """
    Rewrite localize calls in source files and emit their message bundles.

    Args:
        files: Source file records.
        analyzer: Callable returning the AnalysisResult for a source text and
            its source map.

    Yields:
        The (rewritten) source file, then its `.nls.json` and
        `.nls.metadata.json` when the file has messages.
    """
    for file in files:
        analysis = _analyze(file, analyzer, file.source_map, 'rewrite')
        if analysis.rewritten_text is not None:
            file.contents = analysis.rewritten_text.encode('utf-8')
        if analysis.updated_source_map is not None:
            source_map = analysis.updated_source_map
            file.source_map = json.loads(source_map) if isinstance(source_map, str) else source_map
        yield file
        yield from _bundle_files(file, analysis)


def create_meta_data_files(files: Iterable[NlsFile], analyzer: SourceAnalyzer) -> Iterator[NlsFile]:
    """Emit message bundles for source files without touching the sources."""
    for file in files:
        analysis = _analyze(file, analyzer, None, 'rewrite')
        yield file
        yield from _bundle_files(file, analysis)


def bundle_meta_data_files(files: Iterable[NlsFile], id: str, out_dir: str) -> Iterator[NlsFile]:
    """
    Combine all `*.nls.metadata.json` files into one header and one content file.

    Args:
        files: Incoming records.
        id: Id of the owning extension, written to the header.
        out_dir: Output root of the extension, written to the header.

    Yields:
        Non-metadata files as they arrive, then `nls.metadata.header.json` and
        `nls.metadata.json` at end of input.
    """
    base: Optional[str] = None
    bundler = MetaDataBundler(id, out_dir)
    for file in files:
        if not os.path.basename(file.relative).endswith(NLS_METADATA_JSON):
            yield file
            continue
        _require_buffer(file, 'bundle')
        data = file.json()
        if not is_single_metadata_file(data):
            raise ValueError(f"Not a valid metadata file: {file.relative}")
        if base is None:
            base = file.base
        bundler.add(SingleMetaDataFile.from_json(data))

    if base is not None:
        header, content = bundler.bundle()
        yield NlsFile(path=os.path.join(base, NLS_METADATA_HEADER_FILE), base=base,
                      contents=dump_json(header.to_json(), indent=None))
        yield NlsFile(path=os.path.join(base, NLS_METADATA_FILE), base=base,
                      contents=dump_json(content, indent=None))


def create_additional_language_files(
        files: Iterable[NlsFile],
        languages: List[Language],
        i18n_base_dir: str,
        base_dir: Optional[str] = None,
        log_problems: bool = True
) -> Iterator[NlsFile]:
    """
    Emit `<module>.nls.<language>.json` for every bundle and language.

    Handles `package.nls.json` and `*.nls.metadata.json`; translations are
    read from the i18n folder of each language.
    """
    for file in files:
        yield file

        basename = os.path.basename(file.relative)
        is_package_file = basename == PACKAGE_NLS_JSON
        if not is_package_file and not basename.endswith(NLS_METADATA_JSON):
            continue
        _require_buffer(file, 'read component')

        suffix = NLS_JSON if is_package_file else NLS_METADATA_JSON
        filename = file.relative[:-len(suffix)]
        bundle = resolve_message_bundle(file.json())
        for language in languages:
            result = create_localized_messages(filename, bundle, language.folder, i18n_base_dir, base_dir)
            if log_problems:
                for problem in result.problems:
                    logger.warning(problem)
            if result.messages is not None:
                content = json.dumps(result.messages, ensure_ascii=False, indent='\t').replace('\r\n', '\n')
                yield NlsFile(
                    path=os.path.join(file.base or '', filename) + f'.nls.{language.id}.json',
                    base=file.base,
                    contents=content.encode('utf-8'),
                )


def get_module_key(relative_file: str) -> str:
    """`src/a.nls.fr.json` -> `src/a`, with forward slashes."""
    return normalize_path(_MODULE_KEY_PATTERN.match(relative_file).group(1))


def bundle_language_files(files: Iterable[NlsFile]) -> Iterator[NlsFile]:
    """
    Group per-module language fragments into one bundle per language.

    Yields:
        Files that are not language fragments as they arrive, then
        `nls.bundle.json` for the default language and
        `nls.bundle.<language>.json` for every other language seen.
    """
    bundles: Dict[str, Dict] = {}
    for file in files:
        basename = file.basename
        matches = _LANGUAGE_FRAGMENT_PATTERN.search(basename)
        if not matches or basename.endswith(NLS_METADATA_JSON) or not file.is_buffer():
            yield file
            continue
        language = matches.group(1) or DEFAULT_LANGUAGE
        bundle = bundles.setdefault(language, {'base': file.base, 'content': {}})
        bundle['content'][get_module_key(file.relative)] = file.json()

    for language, bundle in bundles.items():
        language_id = '' if language == DEFAULT_LANGUAGE else f'{language}.'
        base = bundle['base'] or ''
        yield NlsFile(path=os.path.join(base, f'nls.bundle.{language_id}json'), base=bundle['base'],
                      contents=dump_json(bundle['content'], indent=None))


def create_key_value_pair_file(files: Iterable[NlsFile], comment_separator: Optional[str] = None) -> Iterator[NlsFile]:
    """
    Emit a `<module>.i18n.json` key/value table next to each metadata file.

    Args:
        files: Incoming records.
        comment_separator: Joins multi-line comments into one string when
            given; otherwise comments stay lists.
    """
    for file in files:
        basename = os.path.basename(file.relative)
        if not basename.endswith(NLS_METADATA_JSON):
            yield file
            continue
        _require_buffer(file, 'read JavaScript message bundle')

        data = file.json()
        if not is_message_bundle(data):
            raise ValueError(f"Not a valid JavaScript message bundle: {file.relative}")
        if not MessageBundle(keys=data['keys'], messages=data['messages']).is_aligned():
            yield file
            continue

        filename = file.relative[:-len(NLS_METADATA_JSON)]
        yield file
        yield NlsFile(
            path=os.path.join(file.base or '', filename) + I18N_JSON,
            base=file.base,
            contents=dump_json(bundle_to_key_value_pair(data, comment_separator)),
        )


def debug(files: Iterable[NlsFile], prefix: str = '') -> Iterator[NlsFile]:
    for file in files:
        logger.info("%sIn pipe %s", prefix, file.path)
        yield file
