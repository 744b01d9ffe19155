import json
import logging
import os

import pytest

from nls_dev.logging_config import LOGGER_NAME
from nls_dev.message_bundle import AnalysisResult
from nls_dev.nls_file import NlsFile

BUILD_BASE = os.path.join(os.sep, 'project', 'out')


@pytest.fixture
def make_nls_file():
    """Factory for in-memory pipeline records below a fixed base folder."""
    def _make(relative_path, content, base=BUILD_BASE):
        if isinstance(content, bytes) or content is None:
            data = content
        elif isinstance(content, str):
            data = content.encode('utf-8')
        else:
            data = json.dumps(content).encode('utf-8')
        return NlsFile(path=os.path.join(base, relative_path), base=base, contents=data)
    return _make


@pytest.fixture
def write_i18n_file(tmp_path):
    """Write `<tmp>/i18n/<folder>/<module>.i18n.json` and return the i18n root."""
    i18n_root = tmp_path / 'i18n'

    def _write(folder, module, content):
        target = i18n_root / folder / f'{module}.i18n.json'
        target.parent.mkdir(parents=True, exist_ok=True)
        text = content if isinstance(content, str) else json.dumps(content)
        target.write_text(text, encoding='utf-8')
        return str(i18n_root)
    return _write


@pytest.fixture
def greeting_analyzer():
    """Analyzer stub reporting one localized message per source file."""
    calls = []

    def _analyze(text, source_map):
        calls.append((text, source_map))
        return AnalysisResult(
            keys=['greeting', {'key': 'farewell', 'comment': ['Shown on exit']}],
            messages=['Hello', 'Goodbye'],
            rewritten_text=text.replace("localize('greeting', 'Hello')", "localize(0, null)"),
        )
    _analyze.calls = calls
    return _analyze


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo handlers installed by setup_logger so tests stay independent."""
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
