"""
In-memory XLIFF 1.2 document.

XLF collects file groups of translation units, serializes them into the
XLIFF text handed to translators, and parses translated XLIFF back into
per-file key/text maps.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from lxml import etree

from nls_dev.message_bundle import KeyInfo, MessageInfo, comment_of, key_of, message_of

XLIFF_NAMESPACE = 'urn:oasis:names:tc:xliff:document:1.2'
SOURCE_LANGUAGE = 'en'
LINE_SEPARATOR = '\r\n'

_ENTITIES = {
    '<': '&lt;',
    '>': '&gt;',
    '&': '&amp;',
    '"': '&quot;',
    "'": '&#39;',
    '\r': '&#13;',
}


class XlfParseError(ValueError):
    """Raised when an XLIFF document lacks the structure needed to import it."""


@dataclass
class Item:
    id: str
    message: str
    comment: Optional[str] = None
    target: Optional[str] = None


@dataclass
class ParsedXLF:
    messages: Dict[str, str]
    original_file_path: str
    language: Optional[str]


def encode_entities(value: str) -> str:
    """
    Escape the five XML-significant characters and carriage returns.

    A raw `\\r` would be folded into `\\n` by any XML parser. Other C0 control
    characters cannot be represented in XML 1.0 at all; documents containing
    them are rejected on parse.
    """
    return ''.join(_ENTITIES.get(ch, ch) for ch in value)


def _get_value(target: Any) -> Optional[str]:
    """
    Normalize a parsed leaf into its text.

    Accepts a plain string, an element, or a single-element list of either.
    Anything else (no node, several nodes) has no value.
    """
    if isinstance(target, (list, tuple)):
        if len(target) != 1:
            return None
        target = target[0]
    if target is None:
        return None
    if isinstance(target, str):
        return target
    if isinstance(target, etree._Element):
        return ''.join(target.itertext())
    return None


def _local_name(element: etree._Element) -> str:
    return etree.QName(element).localname


class XLF:
    """
    Accumulator for one XLIFF document.

    Args:
        project: Name of the project the document belongs to.
        target_language: Language id written as `target-language`; None for
            a source-only document.
    """

    def __init__(self, project: str, target_language: Optional[str] = None):
        self.project = project
        self.target_language = target_language
        self._files: Dict[str, List[Item]] = {}

    @property
    def files(self) -> Dict[str, List[Item]]:
        return self._files

    def has_file(self, original: str) -> bool:
        return original in self._files

    def add_file(self, original: str, keys: Sequence[KeyInfo], messages: Sequence[MessageInfo]) -> None:
        """
        Add a file group of translation units.

        Args:
            original: Path identifying the group, unique within the document.
            keys: Keys, plain or with comments.
            messages: Messages index-aligned with keys; plain or `{message, comment}`.

        Raises:
            ValueError: If keys and messages differ in length.
        """
        if len(keys) == 0:
            return
        if len(keys) != len(messages):
            raise ValueError(f"Un-matching keys({len(keys)}) and messages({len(messages)}).")

        items: List[Item] = []
        existing_keys = set()
        for key_info, message_info in zip(keys, messages):
            key = key_of(key_info)
            if key in existing_keys:
                continue
            existing_keys.add(key)

            comments = comment_of(key_info)
            if comments is None:
                comments = comment_of(message_info)
            comment = None
            if comments is not None:
                comment = LINE_SEPARATOR.join(encode_entities(line) for line in comments)
            items.append(Item(id=key, message=encode_entities(message_of(message_info)), comment=comment))
        self._files[original] = items

    def _get_file_for_target(self, original: str, translation: Any) -> List[Item]:
        file_items = self._files.get(original)
        if file_items is None:
            raise ValueError(f"Un-matching original({original}).")
        if translation is None:
            raise ValueError(f"Missing target({original}).")
        if len(file_items) != len(translation):
            raise ValueError(f"Mis-matching target({original}).")
        return file_items

    def set_language_bundle(self, original: str, translation: Optional[Sequence[str]]) -> None:
        """Overlay index-aligned translations onto an existing file group."""
        file_items = self._get_file_for_target(original, translation)
        for item, text in zip(file_items, translation):
            item.target = encode_entities(text)

    def set_language_package(self, original: str, translation: Optional[Dict[str, MessageInfo]]) -> None:
        """Overlay key-indexed translations onto an existing file group."""
        file_items = self._get_file_for_target(original, translation)
        items_by_id = {item.id: item for item in file_items}
        for key, value in translation.items():
            item = items_by_id.get(key)
            if item is None:
                raise ValueError(f"Un-matching key({key}) in original({original}).")
            item.target = encode_entities(message_of(value))

    def to_string(self) -> str:
        lines: List[str] = []
        self._append_header(lines)
        target_attribute = f'target-language="{self.target_language}" ' if self.target_language else ''
        for original, items in self._files.items():
            self._append_new_line(
                lines,
                f'<file original="{encode_entities(original)}" source-language="{SOURCE_LANGUAGE}" '
                f'{target_attribute}datatype="plaintext"><body>',
                2)
            for item in items:
                self._add_string_item(lines, item)
            self._append_new_line(lines, '</body></file>', 2)
        self._append_footer(lines)
        return LINE_SEPARATOR.join(lines)

    def __str__(self) -> str:
        return self.to_string()

    def _add_string_item(self, lines: List[str], item: Item) -> None:
        if not item.id:
            raise ValueError('No item ID specified.')

        self._append_new_line(lines, f'<trans-unit id="{encode_entities(item.id)}">', 4)
        self._append_new_line(lines, f'<source xml:lang="{SOURCE_LANGUAGE}">{item.message}</source>', 6)
        if item.comment:
            self._append_new_line(lines, f'<note>{item.comment}</note>', 6)
        if item.target is not None:
            self._append_new_line(lines, f'<target>{item.target}</target>', 6)
        self._append_new_line(lines, '</trans-unit>', 4)

    def _append_header(self, lines: List[str]) -> None:
        self._append_new_line(lines, '<?xml version="1.0" encoding="utf-8"?>')
        self._append_new_line(lines, f'<xliff version="1.2" xmlns="{XLIFF_NAMESPACE}">')

    def _append_footer(self, lines: List[str]) -> None:
        self._append_new_line(lines, '</xliff>')

    @staticmethod
    def _append_new_line(lines: List[str], content: str, indent: int = 0) -> None:
        lines.append(' ' * indent + content)

    @staticmethod
    def parse(xml: str, force_language: bool = True) -> List[ParsedXLF]:
        """
        Parse a translated XLIFF document into per-file message maps.

        Args:
            xml: The XLIFF text (or bytes).
            force_language: Require `target-language` and `<target>` elements.
                When False, units without a target fall back to their source.

        Returns:
            One ParsedXLF per file group that contains translation units.

        Raises:
            XlfParseError: If the document is not usable for importing.
        """
        data = xml.encode('utf-8') if isinstance(xml, str) else xml
        parser = etree.XMLParser(resolve_entities=False, no_network=True)
        try:
            root = etree.fromstring(data, parser)
        except etree.XMLSyntaxError as e:
            raise XlfParseError(f"Failed to parse XLIFF string. {e}") from e

        file_nodes = root.findall('{*}file') if _local_name(root) == 'xliff' else []
        if not file_nodes:
            raise XlfParseError('XLIFF file does not contain "xliff" or "file" node(s) required for parsing.')

        files: List[ParsedXLF] = []
        for file_node in file_nodes:
            original_file_path = file_node.get('original')
            if not original_file_path:
                raise XlfParseError(
                    'XLIFF file node does not contain original attribute to determine '
                    'the original location of the resource file.')
            language = file_node.get('target-language')
            language = language.lower() if language else None
            if force_language and not language:
                raise XlfParseError(
                    f"XLIFF file node '{original_file_path}' does not contain target-language attribute "
                    f"to determine translated language.")

            body = file_node.find('{*}body')
            trans_units = body.findall('{*}trans-unit') if body is not None else []
            if not trans_units:
                continue

            messages: Dict[str, str] = {}
            for unit in trans_units:
                key = unit.get('id')
                targets = unit.findall('{*}target')
                if force_language and not targets:
                    continue

                value = _get_value(targets or unit.findall('{*}source'))
                if key and value is not None:
                    messages[key] = value
                elif force_language:
                    raise XlfParseError(
                        f"XLIFF file does not contain full localization data. ID or target translation "
                        f"for one of the trans-unit nodes is not present "
                        f"(file '{original_file_path}', trans-unit '{key or ''}').")
            files.append(ParsedXLF(messages=messages, original_file_path=original_file_path, language=language))
        return files
