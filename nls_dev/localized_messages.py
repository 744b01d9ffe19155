import json
import os
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from nls_dev.message_bundle import TranslationSource
from nls_dev.nls_file import I18N_JSON

# String literals are matched first so comment markers inside them survive.
_COMMENT_PATTERN = re.compile(r'("(?:[^"\\]|\\.)*")|(/\*.*?\*/)|(//[^\r\n]*)', re.DOTALL)


@dataclass
class LocalizedMessages:
    """Localized message set for one module and one language."""
    messages: Optional[Dict[str, str]]
    problems: List[str] = field(default_factory=list)
    i18n_file: str = ''


def strip_comments(content: str) -> str:
    """Remove `/* */` and `//` comments outside of JSON string literals."""
    return _COMMENT_PATTERN.sub(lambda match: match.group(1) or '', content)


def get_i18n_file_path(original_module_name: str, language_folder_name: str, i18n_base_dir: str,
                       base_dir: Optional[str] = None) -> str:
    if base_dir:
        path = os.path.join(i18n_base_dir, language_folder_name, base_dir, original_module_name)
    else:
        path = os.path.join(i18n_base_dir, language_folder_name, original_module_name)
    return path + I18N_JSON


def load_i18n_file(i18n_file: str) -> Dict[str, str]:
    with open(i18n_file, 'r', encoding='utf-8') as f:
        return json.loads(strip_comments(f.read()))


def create_localized_messages(
        original_module_name: str,
        bundle: TranslationSource,
        language_folder_name: str,
        i18n_base_dir: str,
        base_dir: Optional[str] = None
) -> LocalizedMessages:
    """
    Produce the localized message set of one module for one language.

    Translations are looked up in
    `<i18n_base_dir>/<language_folder_name>/[<base_dir>/]<module>.i18n.json`.
    A key without a translation is reported as a problem and left out of the
    result; it never fails the whole module.

    Args:
        original_module_name: Module path relative to its base, without suffix.
        bundle: The untranslated bundle (array or package form).
        language_folder_name: Folder holding the language's translations.
        i18n_base_dir: Root of all translation folders.
        base_dir: Optional sub directory between the language folder and the module.

    Returns:
        LocalizedMessages with `messages` set to None when no translation file
        was usable.
    """
    i18n_file = get_i18n_file_path(original_module_name, language_folder_name, i18n_base_dir, base_dir)
    display_name = i18n_file[len(i18n_base_dir) + 1:] if i18n_base_dir else i18n_file
    result = LocalizedMessages(messages=None, i18n_file=i18n_file)

    if not os.path.exists(i18n_file):
        if len(bundle) > 0:
            result.problems.append(f"Message file {display_name} not found. Missing messages: {len(bundle)}")
        return result

    translations = load_i18n_file(i18n_file)
    if not translations:
        if len(bundle) > 0:
            result.problems.append(f"Message file {display_name} is empty. Missing messages: {len(bundle)}")
        return result

    messages: Dict[str, str] = {}
    for key in bundle.keys:
        message = translations.get(key)
        if not message or not isinstance(message, str):
            result.problems.append(
                f"No localized message found for key {key} in module {original_module_name}.")
            continue
        messages[key] = message
    result.messages = messages
    return result
