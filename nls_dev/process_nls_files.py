"""
Entry point running one nls pipeline operation from the configuration.

Operations:
    bundle  - create per-language files from the i18n folder and bundle
              metadata and messages of the build output
    export  - create the XLIFF document of the build output
    import  - turn translated XLIFF documents into `*.i18n.json` files
"""
import asyncio
import logging
import os
import sys
from typing import AsyncIterable, Iterable, Iterator, List, Optional, Union

from tqdm import tqdm

from nls_dev.app_config import AppConfig, load_app_config
from nls_dev.logging_config import LOGGER_NAME
from nls_dev.nls_file import XLF_EXTENSION, NlsFile
from nls_dev.nls_stages import bundle_language_files, bundle_meta_data_files, create_additional_language_files
from nls_dev.xliff_exchange import create_xlf_files, prepare_json_files

# Not __name__: this module also runs as __main__.
logger = logging.getLogger(f"{LOGGER_NAME}.process_nls_files")


def read_nls_files(folder: str, suffix: Optional[str] = None) -> List[NlsFile]:
    """
    Read every file below a folder as pipeline records.

    Args:
        folder: Folder to walk; it becomes the base of every record.
        suffix: Only read files whose name ends with this suffix.

    Returns:
        Records sorted by path.
    """
    if not os.path.isdir(folder):
        raise FileNotFoundError(f"Folder '{folder}' does not exist.")

    paths = []
    for dirpath, _, filenames in os.walk(folder):
        for filename in filenames:
            if suffix is None or filename.endswith(suffix):
                paths.append(os.path.join(dirpath, filename))

    files = []
    for path in sorted(paths):
        with open(path, 'rb') as f:
            files.append(NlsFile(path=path, base=folder, contents=f.read()))
    return files


def _output_path(file: NlsFile, output_folder: str) -> str:
    return os.path.join(output_folder, file.relative)


def write_nls_file(file: NlsFile, output_folder: str) -> str:
    output_path = _output_path(file, output_folder)
    output_dir = os.path.dirname(output_path)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
    with open(output_path, 'wb') as f:
        f.write(file.contents)
    return output_path


def write_nls_files(files: Iterable[NlsFile], output_folder: str) -> int:
    """Write records below output_folder, keeping their relative paths."""
    count = 0
    for file in tqdm(files, desc="Writing files", unit="file", leave=False):
        output_path = write_nls_file(file, output_folder)
        logger.debug("Wrote %s", output_path)
        count += 1
    return count


def run_bundle(config: AppConfig) -> int:
    files = read_nls_files(config.build_output_folder)
    input_paths = {file.path for file in files}
    generated: List[NlsFile] = []

    def collect_generated(stream: Iterable[NlsFile]) -> Iterator[NlsFile]:
        for file in stream:
            if file.path not in input_paths:
                generated.append(file)
            yield file

    # bundle_language_files absorbs the per-language fragments, which export reads from disk.
    stream = collect_generated(create_additional_language_files(
        files, config.languages, config.i18n_base_dir, config.i18n_sub_dir, config.log_problems))
    stream = bundle_meta_data_files(stream, config.extension_id, config.out_dir)
    stream = bundle_language_files(stream)

    generated.extend(file for file in stream if file.path not in input_paths)
    count = write_nls_files(generated, config.build_output_folder)
    logger.info("Wrote %d bundle file(s) to '%s'.", count, config.build_output_folder)
    return count


def run_export(config: AppConfig) -> int:
    files = read_nls_files(config.build_output_folder)
    xlf_files = [
        file for file in create_xlf_files(
            files, config.project_name, config.extension_name, config.export_language)
        if file.path.endswith(XLF_EXTENSION)
    ]
    if not xlf_files:
        logger.warning("No nls files found in '%s'; nothing to export.", config.build_output_folder)
    count = write_nls_files(xlf_files, config.xlf_folder)
    logger.info("Wrote %d XLIFF file(s) to '%s'.", count, config.xlf_folder)
    return count


async def import_xlf_files(
        xlf_files: Union[Iterable[NlsFile], AsyncIterable[NlsFile]],
        config: AppConfig
) -> int:
    count = 0
    progress = tqdm(desc="Importing translations", unit="file", leave=False)
    try:
        async for i18n_file in prepare_json_files(xlf_files, config.languages or None, config.prolog):
            write_nls_file(i18n_file, config.i18n_base_dir)
            count += 1
            progress.update(1)
    finally:
        progress.close()
    return count


async def run_import(config: AppConfig) -> int:
    xlf_files = read_nls_files(config.xlf_folder, XLF_EXTENSION)
    count = await import_xlf_files(xlf_files, config)
    logger.info("Imported %d translation file(s) into '%s'.", count, config.i18n_base_dir)
    return count


async def main():
    """
    Main function to run the configured operation.
    """
    config = load_app_config()
    logger.info("Running '%s' operation.", config.operation)

    if config.operation == 'bundle':
        run_bundle(config)
    elif config.operation == 'export':
        run_export(config)
    else:
        await run_import(config)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except Exception as main_exc:
        logger.error(f"An unexpected error occurred during execution: {main_exc}")
        sys.exit(1)
