import pytest

from tests.unit.sources.osipi.osipi_test_utils import ACTIVE_POWER, GRID_FREQ, FakePiServer


@pytest.fixture
def server() -> FakePiServer:
    fake = FakePiServer()
    fake.add_attribute(GRID_FREQ, "GridFreq", "Hz", lambda ts: 50.0 + ts.second / 1000.0)
    fake.add_attribute(ACTIVE_POWER, "InsAcPow", "MW", lambda ts: float(ts.minute))
    return fake
