"""Unit tests for creating localized message sets from i18n files."""
import json
import os

from nls_dev.localized_messages import create_localized_messages, get_i18n_file_path, strip_comments
from nls_dev.message_bundle import PackageMessageBundle, ResolvedMessageBundle


def _bundle():
    return ResolvedMessageBundle(['a', 'b', 'c'], ['A', 'B', 'C'])


def test_all_keys_translated(write_i18n_file):
    i18n_root = write_i18n_file('fra', 'src/a', {'a': 'A-fr', 'b': 'B-fr', 'c': 'C-fr'})

    result = create_localized_messages('src/a', _bundle(), 'fra', i18n_root)

    assert result.messages == {'a': 'A-fr', 'b': 'B-fr', 'c': 'C-fr'}
    assert result.problems == []
    assert result.i18n_file == os.path.join(i18n_root, 'fra', 'src/a') + '.i18n.json'


def test_missing_key_reports_one_problem_and_keeps_the_rest(write_i18n_file):
    i18n_root = write_i18n_file('fra', 'src/a', {'a': 'A-fr', 'c': 'C-fr', 'unused': 'x'})

    result = create_localized_messages('src/a', _bundle(), 'fra', i18n_root)

    assert result.messages == {'a': 'A-fr', 'c': 'C-fr'}
    assert result.problems == ["No localized message found for key b in module src/a."]


def test_empty_translation_counts_as_missing(write_i18n_file):
    i18n_root = write_i18n_file('fra', 'src/a', {'a': '', 'b': 'B-fr', 'c': 'C-fr'})

    result = create_localized_messages('src/a', _bundle(), 'fra', i18n_root)

    assert 'a' not in result.messages
    assert len(result.problems) == 1


def test_missing_file_reports_all_messages(tmp_path):
    result = create_localized_messages('src/a', _bundle(), 'fra', str(tmp_path))

    assert result.messages is None
    expected_name = os.path.join('fra', 'src/a') + '.i18n.json'
    assert result.problems == [f"Message file {expected_name} not found. Missing messages: 3"]


def test_missing_file_for_empty_bundle_is_not_a_problem(tmp_path):
    result = create_localized_messages('src/a', ResolvedMessageBundle([], []), 'fra', str(tmp_path))

    assert result.messages is None
    assert result.problems == []


def test_empty_file_reports_all_messages(write_i18n_file):
    i18n_root = write_i18n_file('fra', 'src/a', {})

    result = create_localized_messages('src/a', _bundle(), 'fra', i18n_root)

    assert result.messages is None
    assert len(result.problems) == 1
    assert "is empty. Missing messages: 3" in result.problems[0]


def test_prolog_comments_are_ignored(write_i18n_file):
    content = '// Generated file\n/* do not edit */\n' + json.dumps({'a': 'see http://example.com'})
    i18n_root = write_i18n_file('fra', 'package', content)

    result = create_localized_messages('package', PackageMessageBundle({'a': 'A'}), 'fra', i18n_root)

    assert result.messages == {'a': 'see http://example.com'}


def test_base_dir_is_inserted_after_language_folder(write_i18n_file):
    i18n_root = write_i18n_file('cht', 'extensions/git/src/a', {'a': 'A-tw'})

    result = create_localized_messages(
        'src/a', ResolvedMessageBundle(['a'], ['A']), 'cht', i18n_root, base_dir='extensions/git')

    assert result.messages == {'a': 'A-tw'}


def test_get_i18n_file_path():
    assert get_i18n_file_path('src/a', 'fra', 'i18n') == os.path.join('i18n', 'fra', 'src/a') + '.i18n.json'
    assert get_i18n_file_path('a', 'fra', 'i18n', 'sub') == os.path.join('i18n', 'fra', 'sub', 'a') + '.i18n.json'


def test_strip_comments_keeps_string_contents():
    text = '{\n\t// line\n\t"url": "http://x/*y*/", /* block */\n\t"b": "c"\n}'
    assert json.loads(strip_comments(text)) == {'url': 'http://x/*y*/', 'b': 'c'}
