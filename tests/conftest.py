# FILE: tests/conftest.py

import pytest
import sys
import os
import logging
from pathlib import Path

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from hl7_parser import parse_message

# ==============================================================================
# PYTEST CONFIGURATION & HOOKS
# ==============================================================================

def pytest_configure(config):
    """Configure pytest settings and markers."""
    config.addinivalue_line("markers", "unit: Pure unit tests with no external dependencies.")
    config.addinivalue_line("markers", "integration: Tests that touch the filesystem or run the CLI.")

@pytest.fixture(scope="session", autouse=True)
def setup_test_environment(pytestconfig):
    """Set up test environment with logging configuration."""
    # Use pytest's log_cli_level if available, otherwise default to INFO
    log_level = pytestconfig.getoption("log_cli_level") or "INFO"
    logging.basicConfig(
        level=log_level.upper(),
        format="[%(asctime)s] [%(levelname)s] [%(name)s:%(lineno)d] - %(message)s",
        stream=sys.stdout,
        force=True,
    )
    logging.info(f"Test logging configured with level: {log_level.upper()}")
    yield

# ==============================================================================
# TEST DATA
# ==============================================================================

@pytest.fixture(scope="session")
def oru_hl7_string() -> str:
    """
    An ORU^R01 with repeating patient identifiers, a PV1 location with
    subcomponents, an escaped component separator in OBX[1]-5 and seven OBX
    segments.
    """
    return (
        "MSH|^~\\&|||||||ORU^R01|HP128978937126197|P|2.3||||||8859/1\r"
        "PID|||E12345^^^^EPI~858585^^^^SMHMRN~222444^^^^HHHMRN||Smith^John||\"\"|U\r"
        "PV1||I|8-3600^^8-3604&4&1\r"
        "OBR||||||||||||||20111114214931\r"
        "OBX||NM|0002-4bb8^SpO2^MDIL|0|98|0004-0220^%^MDIL|||||F\r"
        "OBX||NM|0002-5000^SML^MDIL|0|2.73x10\\S\\-7|0004-0ae0^rpm^MDIL|||||F\r"
        "OBX||NM|0002-f125^pNN50^MDIL|0|0.00|0004-0220^%^MDIL|||||F\r"
        "OBX||NM|0002-4182^HR^MDIL|0|87|0004-0aa0^bpm^MDIL|||||F\r"
        "OBX||NM|0002-4261^PVC^MDIL|0|0|0004-0aa0^bpm^MDIL|||||F\r"
        "OBX||NM|0002-4822^Pulse^MDIL|0|87|0004-0aa0^bpm^MDIL|||||F\r"
        "OBX||NM|0002-f081^SD NN^MDIL|0|3.00|0004-0aa0^bpm^MDIL|||||F\r"
    )

@pytest.fixture
def oru_message(oru_hl7_string: str):
    """A freshly parsed copy of the ORU message for each test."""
    return parse_message(oru_hl7_string)

@pytest.fixture(scope="session")
def adt_hl7_string() -> str:
    """
    An ADT^A13 with next-of-kin repetitions, a subcomponent-only field
    (NK1-7) and a Z segment with a repeating field.
    """
    return (
        "MSH|^~\\&|FLOWCAST|IDX|URMC|ENGINE|201001111101||ADT^A13|61234_22333_DC|P|2.3||||||ASCII|\r"
        "PID|1||1133445^^^IDX^MRN||MORGAN^JESSICA^^^^||19871012|F||WH|123 MILL RD^^ROCHESTER^NY^14526^^^^||(585)555-5555||||||000-11-0000||||||||N|||N|\r"
        "NK1|1|MORGAN^BILL^^^^|SP||(315)555-5555||NK&&KID||||\r"
        "NK1|1|MORGAN^JOE^^^^|SP||(315)555-5555~(315)555-4444||NK||||\r"
        "ZZZ|||^^10&15^SAMPLE\r"
        "ZRP|||ONE~TWO~THREE||\r"
    )

@pytest.fixture
def adt_message(adt_hl7_string: str):
    return parse_message(adt_hl7_string)

@pytest.fixture(scope="session")
def escaped_hl7_string() -> str:
    """An ADT whose data carries escaped and literal delimiter characters."""
    return (
        "MSH|^~\\&|FLOWCAST|IDX|URMC\\S\\12|ENGINE|201001111101||ADT^A13|61234_22333_DC|P|2.3||||||ASCII|\r"
        "PID|1||1133445^^^IDX^MRN||MORGAN^JESSICA^^^^||19871012|F||WH|123\\S\\ MILL RD^^ROCHESTER^NY^14526^^^^||(585)555-5555||||||000-11-0000||||||||N|||N|\r"
        "NK1|1|MORGAN^BILL^^^^|SP||(315)555-5555||NK||||\r"
        "NK1|1|MORGAN^JOE^^^^|SP||(3*5)555-5555~(315)555-4444||NK||||\r"
        "ZZZ|||^2.1\\S\\-10^10&15^SAMPLE\r"
    )

@pytest.fixture
def escaped_message(escaped_hl7_string: str):
    return parse_message(escaped_hl7_string)

@pytest.fixture
def batch_file(tmp_path: Path, oru_hl7_string: str, adt_hl7_string: str) -> Path:
    """Two messages separated by CRLF, as most interface engines write them."""
    path = tmp_path / "batch.hl7"
    path.write_bytes((oru_hl7_string + "\r\n" + adt_hl7_string + "\r\n").encode("utf-8"))
    return path
