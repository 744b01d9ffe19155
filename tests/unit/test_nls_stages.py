"""Unit tests for the nls pipeline stages."""
import json
import os
from unittest.mock import patch

import pytest

from nls_dev.message_bundle import AnalysisResult, Language
from nls_dev.nls_stages import (
    bundle_language_files,
    bundle_meta_data_files,
    create_additional_language_files,
    create_key_value_pair_file,
    create_meta_data_files,
    debug,
    get_module_key,
    rewrite_localize_calls,
)

BUILD_BASE = os.path.join(os.sep, 'project', 'out')

SOURCE = "const msg = localize('greeting', 'Hello');"


def _by_relative(files):
    return {file.relative: file for file in files}


class TestRewriteLocalizeCalls:

    def test_emits_source_and_bundles(self, make_nls_file, greeting_analyzer):
        source = make_nls_file('src/a.js', SOURCE)

        out = list(rewrite_localize_calls([source], greeting_analyzer))

        assert [file.relative for file in out] == [
            'src/a.js', os.path.join('src', 'a.nls.json'), os.path.join('src', 'a.nls.metadata.json')]
        assert out[0].text() == "const msg = localize(0, null);"
        assert out[1].json() == ['Hello', 'Goodbye']
        assert out[2].json() == {
            'keys': ['greeting', {'key': 'farewell', 'comment': ['Shown on exit']}],
            'messages': ['Hello', 'Goodbye'],
            'filePath': 'src/a',
        }

    def test_passes_and_updates_source_map(self, make_nls_file):
        source = make_nls_file('a.js', SOURCE)
        source.source_map = {'version': 3, 'mappings': ''}
        seen = []

        def analyzer(text, source_map):
            seen.append(source_map)
            return AnalysisResult(updated_source_map='{"version": 3, "mappings": "AAAA"}')

        out = list(rewrite_localize_calls([source], analyzer))

        assert seen == [{'version': 3, 'mappings': ''}]
        assert len(out) == 1
        assert out[0].source_map == {'version': 3, 'mappings': 'AAAA'}
        assert out[0].text() == SOURCE

    def test_analyzer_errors_fail_the_file(self, make_nls_file):
        def analyzer(text, source_map):
            return AnalysisResult(errors=['(1,1): unexpected token'])

        with patch('nls_dev.nls_stages.logger') as mock_logger:
            with pytest.raises(ValueError, match='Failed to rewrite file'):
                list(rewrite_localize_calls([make_nls_file('a.js', SOURCE)], analyzer))
        mock_logger.error.assert_called_once()

    def test_file_without_contents_fails(self, make_nls_file, greeting_analyzer):
        with pytest.raises(ValueError, match='Failed to read file'):
            list(rewrite_localize_calls([make_nls_file('a.js', None)], greeting_analyzer))


def test_create_meta_data_files_leaves_source_untouched(make_nls_file, greeting_analyzer):
    out = list(create_meta_data_files([make_nls_file('a.js', SOURCE)], greeting_analyzer))

    assert out[0].text() == SOURCE
    assert greeting_analyzer.calls == [(SOURCE, None)]
    assert [file.basename for file in out] == ['a.js', 'a.nls.json', 'a.nls.metadata.json']


class TestBundleMetaDataFiles:

    def test_bundles_metadata_and_passes_other_files(self, make_nls_file):
        files = [
            make_nls_file('src/b.nls.metadata.json', {'keys': ['b'], 'messages': ['B'], 'filePath': 'src/b'}),
            make_nls_file('src/b.js', 'code'),
            make_nls_file('a.nls.metadata.json', {'keys': ['a'], 'messages': ['A'], 'filePath': 'a'}),
        ]

        out = list(bundle_meta_data_files(files, 'pub.ext', 'out'))

        assert [file.relative for file in out] == [
            os.path.join('src', 'b.js'), 'nls.metadata.header.json', 'nls.metadata.json']
        header, content = out[1], out[2]
        assert header.contents == b'{"id":"pub.ext","outDir":"out"}'
        assert header.path == os.path.join(BUILD_BASE, 'nls.metadata.header.json')
        assert list(content.json()) == ['a', 'src/b']
        assert content.json()['src/b'] == {'messages': ['B'], 'keys': ['b']}

    def test_metadata_without_file_path_is_rejected(self, make_nls_file):
        files = [make_nls_file('a.nls.metadata.json', {'keys': ['a'], 'messages': ['A']})]

        with pytest.raises(ValueError, match='Not a valid metadata file'):
            list(bundle_meta_data_files(files, 'pub.ext', 'out'))

    def test_no_metadata_emits_nothing(self, make_nls_file):
        out = list(bundle_meta_data_files([make_nls_file('a.js', 'code')], 'pub.ext', 'out'))
        assert [file.basename for file in out] == ['a.js']


class TestCreateAdditionalLanguageFiles:

    def test_writes_language_files_for_package_and_modules(self, make_nls_file, write_i18n_file):
        write_i18n_file('fra', 'package', {'title': 'Titre'})
        i18n_root = write_i18n_file('fra', 'src/a', {'a': 'A-fr'})
        files = [
            make_nls_file('package.nls.json', {'title': 'Title'}),
            make_nls_file('src/a.nls.metadata.json', {'keys': ['a'], 'messages': ['A'], 'filePath': 'src/a'}),
        ]

        out = _by_relative(create_additional_language_files(files, [Language('fr', 'fra')], i18n_root))

        assert out['package.nls.fr.json'].json() == {'title': 'Titre'}
        assert out[os.path.join('src', 'a.nls.fr.json')].json() == {'a': 'A-fr'}
        assert out['package.nls.fr.json'].text() == '{\n\t"title": "Titre"\n}'

    def test_problems_are_logged(self, make_nls_file, tmp_path):
        files = [make_nls_file('package.nls.json', {'title': 'Title'})]

        with patch('nls_dev.nls_stages.logger') as mock_logger:
            out = list(create_additional_language_files(files, [Language('de')], str(tmp_path)))

        assert [file.basename for file in out] == ['package.nls.json']
        mock_logger.warning.assert_called_once()
        assert 'not found. Missing messages: 1' in mock_logger.warning.call_args[0][0]

    def test_problems_can_be_silenced(self, make_nls_file, tmp_path):
        files = [make_nls_file('package.nls.json', {'title': 'Title'})]

        with patch('nls_dev.nls_stages.logger') as mock_logger:
            list(create_additional_language_files(files, [Language('de')], str(tmp_path), log_problems=False))

        mock_logger.warning.assert_not_called()


def test_get_module_key():
    assert get_module_key('src/a.nls.fr.json') == 'src/a'
    assert get_module_key('src\\a.nls.json') == 'src/a'
    assert get_module_key('package.nls.zh-tw.json') == 'package'


class TestBundleLanguageFiles:

    def test_one_bundle_per_language(self, make_nls_file):
        files = [
            make_nls_file('a.nls.json', ['A']),
            make_nls_file('a.nls.fr.json', {'a': 'A-fr'}),
            make_nls_file('b.nls.json', ['B']),
        ]

        out = list(bundle_language_files(files))

        assert [file.basename for file in out] == ['nls.bundle.json', 'nls.bundle.fr.json']
        assert out[0].json() == {'a': ['A'], 'b': ['B']}
        assert out[1].json() == {'a': {'a': 'A-fr'}}
        assert out[0].contents == b'{"a":["A"],"b":["B"]}'

    def test_other_files_pass_through_first(self, make_nls_file):
        files = [
            make_nls_file('a.nls.json', ['A']),
            make_nls_file('a.nls.metadata.json', {'keys': ['a'], 'messages': ['A'], 'filePath': 'a'}),
            make_nls_file('a.js', 'code'),
        ]

        out = list(bundle_language_files(files))

        assert [file.basename for file in out] == ['a.nls.metadata.json', 'a.js', 'nls.bundle.json']

    def test_nested_modules_use_forward_slashes(self, make_nls_file):
        out = list(bundle_language_files([make_nls_file('src/nested/a.nls.de.json', {'k': 'v'})]))
        assert out[0].json() == {'src/nested/a': {'k': 'v'}}


class TestCreateKeyValuePairFile:

    def test_emits_i18n_table_after_metadata(self, make_nls_file):
        metadata = make_nls_file('src/a.nls.metadata.json', {
            'keys': ['a', {'key': 'b', 'comment': ['one', 'two']}],
            'messages': ['A', 'B'],
            'filePath': 'src/a',
        })

        out = list(create_key_value_pair_file([metadata], comment_separator=' '))

        assert out[0] is metadata
        assert out[1].relative == os.path.join('src', 'a.i18n.json')
        assert out[1].json() == {'a': 'A', 'b': {'message': 'B', 'comment': 'one two'}}

    def test_misaligned_bundle_is_passed_through(self, make_nls_file):
        metadata = make_nls_file('a.nls.metadata.json', {'keys': ['a', 'b'], 'messages': ['A']})
        assert list(create_key_value_pair_file([metadata])) == [metadata]

    def test_invalid_bundle_raises(self, make_nls_file):
        with pytest.raises(ValueError, match='Not a valid JavaScript message bundle'):
            list(create_key_value_pair_file([make_nls_file('a.nls.metadata.json', {'keys': 'a'})]))


def test_debug_logs_every_file(make_nls_file):
    files = [make_nls_file('a.js', 'a'), make_nls_file('b.js', 'b')]

    with patch('nls_dev.nls_stages.logger') as mock_logger:
        out = list(debug(files, 'bundle: '))

    assert out == files
    assert mock_logger.info.call_count == 2
    assert mock_logger.info.call_args_list[0][0] == ("%sIn pipe %s", 'bundle: ', files[0].path)
