"""
Weather manager for the HK Travel Planner.

This module wraps the weather API manager with Qt signals, an auto-refresh
timer and user-facing error messages.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, Optional
from PySide6.QtCore import QObject, QTimer, Signal

from ..models.weather_data import WeatherData
from ..managers.weather_config import WeatherConfig
from ..api.weather_api_manager import (
    WeatherAPIManager,
    WeatherAPIFactory,
    WeatherAPIException,
    WeatherAuthenticationException,
    WeatherNetworkException,
    WeatherDataException,
    WeatherRateLimitException,
)

logger = logging.getLogger(__name__)


class WeatherErrorHandler:
    """
    Maps weather errors to user-facing messages.

    Handlers are tried in order, so subclasses are listed before their bases.
    """

    def __init__(self, logger: logging.Logger):
        """Initialize error handler."""
        self._logger = logger
        self._error_strategies = [
            (WeatherAuthenticationException, self._handle_auth_error),
            (WeatherRateLimitException, self._handle_rate_limit_error),
            (WeatherNetworkException, self._handle_network_error),
            (WeatherDataException, self._handle_data_error),
            (WeatherAPIException, self._handle_api_error),
        ]

    def handle_error(self, error: Exception) -> str:
        """Handle error and return user-friendly message."""
        for exception_type, handler in self._error_strategies:
            if isinstance(error, exception_type):
                return handler(error)
        return self._handle_generic_error(error)

    def _handle_auth_error(self, error: WeatherAuthenticationException) -> str:
        self._logger.error(f"Weather authentication error: {error}")
        return "天氣服務認證失敗，請檢查 API 金鑰"

    def _handle_rate_limit_error(self, error: WeatherRateLimitException) -> str:
        self._logger.warning(f"Weather rate limit: {error}")
        return "天氣服務請求過於頻繁，請稍後再試"

    def _handle_network_error(self, error: WeatherNetworkException) -> str:
        self._logger.error(f"Weather network error: {error}")
        return "網絡連接錯誤，請檢查網絡設定"

    def _handle_data_error(self, error: WeatherDataException) -> str:
        self._logger.error(f"Weather data error: {error}")
        return "天氣數據暫時不可用"

    def _handle_api_error(self, error: WeatherAPIException) -> str:
        self._logger.error(f"Weather API error: {error}")
        return "無法獲取天氣數據，請稍後再試"

    def _handle_generic_error(self, error: Exception) -> str:
        self._logger.error(f"Unexpected weather error: {error}")
        return "獲取天氣數據時發生未知錯誤"


class WeatherManager(QObject):
    """
    Weather business logic with Qt signals.

    Emits ``weather_updated`` with each new reading, ``weather_error`` with a
    user-facing message on failure and ``loading_state_changed`` around
    every fetch.
    """

    weather_updated = Signal(object)  # WeatherData
    weather_error = Signal(str)
    loading_state_changed = Signal(bool)

    def __init__(
        self,
        config: WeatherConfig,
        api_manager: Optional[WeatherAPIManager] = None,
        auto_refresh: bool = True,
    ):
        """
        Initialize weather manager.

        Args:
            config: Weather configuration
            api_manager: Weather API manager (built from config when None)
            auto_refresh: Start the refresh timer when weather is enabled
        """
        super().__init__()

        self._config = config
        self._api_manager = api_manager or WeatherAPIFactory.create_manager_from_config(config)
        self._current_weather: Optional[WeatherData] = None
        self._error_handler = WeatherErrorHandler(logger)

        self._refresh_timer = QTimer()
        self._refresh_timer.timeout.connect(self._on_refresh_timer)

        self._fetch_count = 0
        self._error_count = 0
        self._last_successful_fetch: Optional[datetime] = None

        logger.info(f"WeatherManager initialized with {self._api_manager.source_name}")

        if auto_refresh and config.enabled:
            self.start_auto_refresh()

    @property
    def error_handler(self) -> WeatherErrorHandler:
        """Error-to-message mapper."""
        return self._error_handler

    def start_auto_refresh(self) -> None:
        """Start automatic weather refresh."""
        if not self._config.enabled:
            logger.warning("Cannot start auto-refresh: weather integration disabled")
            return

        self._refresh_timer.start(self._config.get_refresh_interval_seconds() * 1000)
        logger.info(f"Auto-refresh started with {self._config.refresh_interval_minutes}min interval")

    def stop_auto_refresh(self) -> None:
        """Stop automatic weather refresh."""
        self._refresh_timer.stop()
        logger.info("Auto-refresh stopped")

    def is_auto_refresh_active(self) -> bool:
        """Check if auto-refresh is active."""
        return self._refresh_timer.isActive()

    async def refresh_weather(self) -> WeatherData:
        """
        Fetch the current weather and publish it.

        Raises:
            WeatherAPIException: After emitting ``weather_error``
        """
        self.loading_state_changed.emit(True)

        try:
            self._fetch_count += 1
            weather = await self._api_manager.get_current_weather()

            self._current_weather = weather
            self._last_successful_fetch = datetime.now()
            self.weather_updated.emit(weather)

            logger.info(f"Weather data refreshed successfully (fetch #{self._fetch_count})")
            return weather

        except WeatherAPIException as e:
            self._error_count += 1
            self.weather_error.emit(self._error_handler.handle_error(e))
            logger.error(f"Weather refresh failed (error #{self._error_count}): {e}")
            raise

        finally:
            self.loading_state_changed.emit(False)

    def _on_refresh_timer(self) -> None:
        """Handle auto-refresh timer timeout."""
        if not self._config.enabled:
            self.stop_auto_refresh()
            return

        logger.info("Auto-refresh timer triggered")

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is not None:
            task = loop.create_task(self.refresh_weather())
            task.add_done_callback(self._log_refresh_result)
        else:
            try:
                asyncio.run(self.refresh_weather())
            except WeatherAPIException as e:
                logger.warning(f"Scheduled weather refresh failed: {e}")

    @staticmethod
    def _log_refresh_result(task: "asyncio.Task") -> None:
        if not task.cancelled() and task.exception() is not None:
            logger.warning(f"Scheduled weather refresh failed: {task.exception()}")

    def get_current_weather(self) -> Optional[WeatherData]:
        """Get the last successful reading."""
        return self._current_weather

    def get_statistics(self) -> Dict[str, Any]:
        """Get weather manager statistics."""
        return {
            "fetch_count": self._fetch_count,
            "error_count": self._error_count,
            "success_rate": (
                (self._fetch_count - self._error_count) / max(self._fetch_count, 1) * 100
            ),
            "last_successful_fetch": self._last_successful_fetch,
            "auto_refresh_active": self.is_auto_refresh_active(),
            "has_current_data": self._current_weather is not None,
            "source": self._api_manager.source_name,
        }

    async def update_config(self, new_config: WeatherConfig) -> None:
        """Replace configuration, closing the old API manager before rebuilding it."""
        was_active = self.is_auto_refresh_active()
        await self._api_manager.shutdown()
        self._config = new_config
        self._api_manager = WeatherAPIFactory.create_manager_from_config(new_config)

        if was_active:
            self.stop_auto_refresh()
            if new_config.enabled:
                self.start_auto_refresh()

        logger.info("Weather configuration updated")

    async def shutdown(self) -> None:
        """Stop refreshing and release API resources."""
        self.stop_auto_refresh()
        await self._api_manager.shutdown()
        self._current_weather = None
        logger.info("WeatherManager shutdown complete")
