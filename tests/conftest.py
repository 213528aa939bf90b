"""
Global pytest configuration and fixtures.
"""

import json
import warnings
from datetime import datetime

import pytest
from PySide6.QtCore import QCoreApplication

from src.api.transport_api import HongKongTransportAPI
from src.managers.config_manager import ConfigData, TransportConfig
from src.managers.weather_config import API_KEY_ENV_VAR, WeatherConfig, WeatherConfigFactory
from src.models.location import Location


def pytest_configure(config):
    """Configure pytest to suppress noisy warnings."""
    warnings.filterwarnings("ignore", category=RuntimeWarning)
    warnings.filterwarnings("ignore", message=".*AsyncMockMixin.*was never awaited.*")


@pytest.fixture(scope="session", autouse=True)
def qapp():
    """Provide a Qt core application for signal and timer tests."""
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


@pytest.fixture(autouse=True)
def no_weather_api_key(monkeypatch):
    """Keep a real API key in the environment out of the tests."""
    monkeypatch.delenv(API_KEY_ENV_VAR, raising=False)


@pytest.fixture
def fixed_now():
    """A fixed morning in Hong Kong."""
    return datetime(2024, 6, 1, 9, 0, 0)


@pytest.fixture
def fast_transport_config():
    """Transport settings without simulated latency."""
    return TransportConfig(latency_scale=0.0)


@pytest.fixture
def transport_api(fast_transport_config, fixed_now):
    """Transport API with no latency and a fixed clock."""
    return HongKongTransportAPI(fast_transport_config, clock=lambda: fixed_now)


@pytest.fixture
def weather_config():
    """Weather configuration with an API key and instant retries."""
    return WeatherConfig(api_key="test_key", retry_backoff_seconds=0.0)


@pytest.fixture
def mock_weather_config():
    """Weather configuration that always uses generated weather."""
    return WeatherConfigFactory.create_mock_config()


@pytest.fixture
def temp_config_file(tmp_path):
    """Provide a config file with mock weather and no transport latency."""
    config = ConfigData(
        weather=WeatherConfig(use_mock=True),
        transport=TransportConfig(latency_scale=0.0),
    )
    path = tmp_path / "config.json"
    path.write_text(json.dumps(config.model_dump(), indent=2), encoding="utf-8")
    return str(path)


@pytest.fixture
def central():
    return Location("Central", "Central MTR Station", 22.2819, 114.1586, category="Transport Hub")


@pytest.fixture
def mong_kok():
    return Location("Mong Kok", "Langham Place, Mong Kok", 22.3175, 114.1694, category="Shopping")


@pytest.fixture
def openweather_payload():
    """A current weather body as returned by OpenWeatherMap."""
    return {
        "coord": {"lon": 114.1694, "lat": 22.3193},
        "weather": [{"id": 500, "main": "Rain", "description": "小雨", "icon": "10d"}],
        "main": {
            "temp": 28.4,
            "feels_like": 32.1,
            "temp_min": 27.0,
            "temp_max": 29.5,
            "pressure": 1008,
            "humidity": 84,
        },
        "wind": {"speed": 5.0, "deg": 120},
        "rain": {"1h": 1.2},
        "name": "Hong Kong",
        "cod": 200,
    }
