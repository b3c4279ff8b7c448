import io
import logging

import ezdxf
import pytest

from cutquote.utils.dxf_parser import ExtractorOptions


# Configure logging at session start to also capture pytest errors
@pytest.hookimpl(tryfirst=True)
def pytest_configure(config):
    from cutquote import config as cutquote_config
    cutquote_config.configure_logging()
    root_logger = logging.getLogger()
    root_logger.info('PYTEST STARTUP: conftest.py loaded and logging configured.')
    root_logger.info(f'PYTEST ENV: ezdxf={ezdxf.__version__}')


# Log all test failures and errors
@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item, call):
    outcome = yield
    rep = outcome.get_result()
    if rep.when == 'call' and rep.failed:
        logger = logging.getLogger()
        logger.error(f"Test {item.nodeid} {rep.outcome.upper()}")
        if rep.longrepr:
            logger.error(f"Failure traceback for {item.nodeid}:\n{rep.longrepr}")


@pytest.fixture
def doc():
    """Empty drawing in millimeters."""
    return ezdxf.new('R2010', units=4)


@pytest.fixture
def msp(doc):
    return doc.modelspace()


@pytest.fixture
def options():
    return ExtractorOptions()


@pytest.fixture
def to_text():
    """Serialize an ezdxf document to DXF text, as an upload would deliver it."""
    def _to_text(document):
        stream = io.StringIO()
        document.write(stream)
        return stream.getvalue()
    return _to_text
