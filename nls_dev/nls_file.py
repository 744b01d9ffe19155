"""File records moved between pipeline stages, and the suffixes that route them."""
import json
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

NLS_JSON = '.nls.json'
NLS_METADATA_JSON = '.nls.metadata.json'
I18N_JSON = '.i18n.json'
PACKAGE_NLS_JSON = 'package.nls.json'
NLS_METADATA_HEADER_FILE = 'nls.metadata.header.json'
NLS_METADATA_FILE = 'nls.metadata.json'
XLF_EXTENSION = '.xlf'


@dataclass
class NlsFile:
    """
    A file travelling through the pipeline.

    Attributes:
        path: Full path of the file.
        contents: Raw bytes; None for records that carry no content.
        base: Base directory the relative path is computed against.
        source_map: Decoded source map of a source file, if any.
    """
    path: str
    contents: Optional[bytes]
    base: Optional[str] = None
    source_map: Optional[Dict[str, Any]] = None

    @property
    def relative(self) -> str:
        if self.base:
            return os.path.relpath(self.path, self.base)
        return self.path

    @property
    def basename(self) -> str:
        return os.path.basename(self.path)

    def is_buffer(self) -> bool:
        return self.contents is not None

    def text(self) -> str:
        return self.contents.decode('utf-8')

    def json(self) -> Any:
        return json.loads(self.text())


def dump_json(value: Any, indent: Optional[str] = '\t') -> bytes:
    """
    Encode a value the way the pipeline writes its JSON artifacts.

    Args:
        value: The JSON-compatible value.
        indent: Indent string for pretty output, or None for compact output.

    Returns:
        UTF-8 bytes.
    """
    if indent is None:
        text = json.dumps(value, ensure_ascii=False, separators=(',', ':'))
    else:
        text = json.dumps(value, ensure_ascii=False, indent=indent)
    return text.encode('utf-8')
