"""
Main entry point for the Registrar platform.
"""

import logging
from typing import Optional

import uvicorn

from .api.rest_api import RegistrarRestAPI
from .config import PlatformConfig
from .persistence import DatabaseFactory, SqlRecordStore
from .services import (
    AccessControlService, AdministrationService, ConcurrencyManager,
    GradingService, MaintenanceModeCache, RegistrationService
)


logger = logging.getLogger(__name__)


class RegistrarPlatform:
    """Main platform class that wires storage, services and the API."""

    def __init__(self, config: Optional[PlatformConfig] = None):
        self._config = config or PlatformConfig()
        self._initialize_platform()

    def _initialize_platform(self):
        """Initialize the platform with all services."""
        logger.info("Initializing Registrar platform...")

        self._database = DatabaseFactory.create_database(
            self._config.database_type.value, **self._config.database_config)
        self._store = SqlRecordStore(self._database)
        logger.info("Database initialized: %s", self._config.database_type.value)

        self._concurrency_manager = ConcurrencyManager(default_timeout=self._config.lock_timeout)
        self._access_control = AccessControlService(MaintenanceModeCache(self._store))

        self._registration_service = RegistrationService(
            self._store, self._access_control, self._concurrency_manager)
        self._grading_service = GradingService(self._store, self._access_control)
        self._administration_service = AdministrationService(self._store, self._access_control)

        self._rest_api = RegistrarRestAPI(
            self._registration_service,
            self._grading_service,
            self._administration_service,
        )
        logger.info("Registrar platform initialized")

    @property
    def config(self) -> PlatformConfig:
        return self._config

    @property
    def store(self) -> SqlRecordStore:
        return self._store

    @property
    def registration_service(self) -> RegistrationService:
        return self._registration_service

    @property
    def grading_service(self) -> GradingService:
        return self._grading_service

    @property
    def administration_service(self) -> AdministrationService:
        return self._administration_service

    @property
    def app(self):
        return self._rest_api.app

    def start_rest_server(self, host: Optional[str] = None, port: Optional[int] = None):
        """Serve the REST API until interrupted."""
        host = host or self._config.rest_host
        port = port or self._config.rest_port
        logger.info("REST API listening on http://%s:%s (docs at /docs)", host, port)
        uvicorn.run(self.app, host=host, port=port, log_level=self._config.log_level.lower())


def main():
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="Registrar Registration & Grading Platform")
    parser.add_argument("--host", type=str, help="REST server host")
    parser.add_argument("--rest-port", type=int, help="REST server port")
    parser.add_argument("--config", type=str, help="Configuration file path")

    args = parser.parse_args()

    config = PlatformConfig.from_file(args.config) if args.config else PlatformConfig()

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    platform = RegistrarPlatform(config)
    try:
        platform.start_rest_server(args.host, args.rest_port)
    except KeyboardInterrupt:
        logger.info("Shutting down...")


if __name__ == "__main__":
    main()
