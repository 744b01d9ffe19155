"""Message bundle value types and validation predicates."""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

import jsonschema

KeyInfo = Union[str, Dict[str, Any]]
MessageInfo = Union[str, Dict[str, Any]]

_COMMENT_SCHEMA = {
    "anyOf": [
        {"type": "string"},
        {"type": "array", "items": {"type": "string"}}
    ]
}

KEY_INFO_SCHEMA = {
    "anyOf": [
        {"type": "string"},
        {
            "type": "object",
            "properties": {
                "key": {"type": "string"},
                "comment": _COMMENT_SCHEMA
            },
            "required": ["key"]
        }
    ]
}

MESSAGE_BUNDLE_SCHEMA = {
    "type": "object",
    "properties": {
        "keys": {"type": "array", "items": KEY_INFO_SCHEMA},
        "messages": {"type": "array", "items": {"type": "string"}}
    },
    "required": ["keys", "messages"]
}

SINGLE_METADATA_FILE_SCHEMA = {
    "type": "object",
    "properties": {
        "keys": {"type": "array", "items": KEY_INFO_SCHEMA},
        "messages": {"type": "array", "items": {"type": "string"}},
        "filePath": {"type": "string"}
    },
    "required": ["keys", "messages", "filePath"]
}

# package.nls.json: every value is a string or a {message, comment} object.
PACKAGE_BUNDLE_SCHEMA = {
    "type": "object",
    "additionalProperties": {
        "anyOf": [
            {"type": "string"},
            {
                "type": "object",
                "properties": {
                    "message": {"type": "string"},
                    "comment": _COMMENT_SCHEMA
                },
                "required": ["message", "comment"]
            }
        ]
    }
}

_MESSAGE_BUNDLE_VALIDATOR = jsonschema.Draft7Validator(MESSAGE_BUNDLE_SCHEMA)
_SINGLE_METADATA_FILE_VALIDATOR = jsonschema.Draft7Validator(SINGLE_METADATA_FILE_SCHEMA)
_PACKAGE_BUNDLE_VALIDATOR = jsonschema.Draft7Validator(PACKAGE_BUNDLE_SCHEMA)


def is_message_bundle(value: Any) -> bool:
    """Check whether a decoded JSON value has the `{keys, messages}` shape."""
    return _MESSAGE_BUNDLE_VALIDATOR.is_valid(value)


def is_single_metadata_file(value: Any) -> bool:
    return _SINGLE_METADATA_FILE_VALIDATOR.is_valid(value)


def is_package_bundle(value: Any) -> bool:
    """Check whether a decoded JSON value is a package.nls.json style table."""
    return _PACKAGE_BUNDLE_VALIDATOR.is_valid(value)


def key_of(key_info: KeyInfo) -> str:
    """Return the plain key of a KeyInfo."""
    return key_info if isinstance(key_info, str) else key_info['key']


def comment_of(info: Union[KeyInfo, MessageInfo]) -> Optional[List[str]]:
    """
    Return the comment lines attached to a KeyInfo or a package message.

    Args:
        info: A bare string, `{key, comment?}` or `{message, comment}`.

    Returns:
        The comment as a list of lines, or None when there is no comment.
    """
    if isinstance(info, str):
        return None
    comment = info.get('comment')
    if comment is None:
        return None
    if isinstance(comment, str):
        return [comment]
    return list(comment)


def message_of(info: MessageInfo) -> str:
    return info if isinstance(info, str) else info['message']


def normalize_path(path: str) -> str:
    return path.replace('\\', '/')


def remove_path_prefix(path: str, prefix: Optional[str]) -> str:
    """
    Make `path` relative to `prefix` and normalize it to forward slashes.

    Args:
        path: The absolute or base-prefixed path.
        prefix: The base directory. Ignored when empty or not a prefix of path.

    Returns:
        The relative path with forward slashes.
    """
    if prefix and path.startswith(prefix):
        if prefix[-1] in ('/', '\\'):
            path = path[len(prefix):]
        else:
            path = path[len(prefix) + 1:]
    return normalize_path(path)


@dataclass(frozen=True)
class MessageBundle:
    """Keys and messages of one source file, paired by index."""
    keys: List[KeyInfo]
    messages: List[str]

    def is_aligned(self) -> bool:
        return len(self.keys) == len(self.messages)

    def to_json(self) -> Dict[str, Any]:
        return {'keys': self.keys, 'messages': self.messages}


@dataclass(frozen=True)
class SingleMetaDataFile:
    """The message bundle of one processed source file and where it came from."""
    keys: List[KeyInfo]
    messages: List[str]
    file_path: str

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "SingleMetaDataFile":
        return cls(keys=data['keys'], messages=data['messages'], file_path=data['filePath'])

    def to_json(self) -> Dict[str, Any]:
        return {'keys': self.keys, 'messages': self.messages, 'filePath': self.file_path}


@dataclass(frozen=True)
class BundledMetaDataHeader:
    """Identifies the owning extension and its output root."""
    id: str
    out_dir: str

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "BundledMetaDataHeader":
        return cls(id=data['id'], out_dir=data['outDir'])

    def to_json(self) -> Dict[str, str]:
        return {'id': self.id, 'outDir': self.out_dir}


@dataclass(frozen=True)
class Language:
    """A target language, e.g. `Language('zh-tw', 'cht')`."""
    id: str
    folder_name: Optional[str] = None

    @property
    def folder(self) -> str:
        """Folder holding this language's translations; the id when no folder name is set."""
        return self.folder_name or self.id


@dataclass
class AnalysisResult:
    """
    What the source analyzer reports for one source file.

    Attributes:
        keys: Message keys in call-site order.
        messages: Default messages, index-aligned with keys.
        rewritten_text: Source text with localize calls rewritten, if any.
        updated_source_map: Source map matching rewritten_text (JSON text or dict).
        errors: Analyzer diagnostics; a non-empty list fails the file.
    """
    keys: List[KeyInfo] = field(default_factory=list)
    messages: List[str] = field(default_factory=list)
    rewritten_text: Optional[str] = None
    updated_source_map: Optional[Union[str, Dict[str, Any]]] = None
    errors: List[str] = field(default_factory=list)

    @property
    def bundle(self) -> Optional[MessageBundle]:
        if not self.keys and not self.messages:
            return None
        return MessageBundle(keys=self.keys, messages=self.messages)


class ResolvedMessageBundle:
    """Array-indexed bundle with its keys resolved to plain strings."""

    def __init__(self, keys: List[KeyInfo], messages: List[str]):
        if len(keys) != len(messages):
            raise ValueError(f"Un-matching keys({len(keys)}) and messages({len(messages)}).")
        self.keys: List[str] = [key_of(key) for key in keys]
        self.messages = list(messages)

    def __len__(self) -> int:
        return len(self.keys)


class PackageMessageBundle:
    """Key-indexed bundle backed by a package.nls.json style table."""

    def __init__(self, table: Dict[str, MessageInfo]):
        self.keys: List[str] = list(table)

    def __len__(self) -> int:
        return len(self.keys)


TranslationSource = Union[ResolvedMessageBundle, PackageMessageBundle]


def resolve_message_bundle(data: Any) -> TranslationSource:
    """
    Wrap decoded bundle JSON in the matching lookup type.

    Args:
        data: Either a `{keys, messages}` object (metadata files qualify) or a
            package.nls.json table.

    Returns:
        A bundle exposing `keys` and `len()`.

    Raises:
        ValueError: If the value is neither shape or keys and messages differ in length.
    """
    if is_message_bundle(data):
        return ResolvedMessageBundle(data['keys'], data['messages'])
    if is_package_bundle(data):
        return PackageMessageBundle(data)
    raise ValueError("Not a valid message bundle: expected {keys, messages} or a key/value table.")


def bundle_to_key_value_pair(bundle: Dict[str, Any], comment_separator: Optional[str] = None) -> Dict[str, Any]:
    """
    Flatten a `{keys, messages}` bundle into a key/value table.

    Keys carrying a comment become `{message, comment}` objects. The comment
    is a list of lines unless a separator is given to join them.
    """
    result: Dict[str, Any] = {}
    for key_info, message in zip(bundle['keys'], bundle['messages']):
        key = key_of(key_info)
        comments = comment_of(key_info)
        if not comments:
            result[key] = message
        else:
            result[key] = {
                'message': message,
                'comment': comment_separator.join(comments) if comment_separator is not None else comments
            }
    return result
