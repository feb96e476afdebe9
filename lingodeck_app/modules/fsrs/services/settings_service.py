# File: lingodeck_app/modules/fsrs/services/settings_service.py
from __future__ import annotations
from typing import Any, Dict, Mapping, Optional

from flask import current_app

from ..config import FSRSDefaultConfig
from ..schemas import DeckStepConfig, SchedulerParameters

EXTENSION_KEY = 'fsrs_parameters'


class FSRSSettingsService:
    """Builds scheduler parameters and step ladders from application config."""

    DEFAULTS: Dict[str, Any] = {
        'FSRS_DESIRED_RETENTION': FSRSDefaultConfig.FSRS_DESIRED_RETENTION,
        'FSRS_MAX_INTERVAL': FSRSDefaultConfig.FSRS_MAX_INTERVAL,
        'FSRS_ENABLE_FUZZ': FSRSDefaultConfig.FSRS_ENABLE_FUZZ,
        'FSRS_FUZZ_THRESHOLD': FSRSDefaultConfig.FSRS_FUZZ_THRESHOLD,
        'FSRS_FUZZ_FACTOR': FSRSDefaultConfig.FSRS_FUZZ_FACTOR,
        'FSRS_GLOBAL_WEIGHTS': FSRSDefaultConfig.FSRS_GLOBAL_WEIGHTS,
        'DEFAULT_LEARNING_STEPS': [1, 10],
        'DEFAULT_RELEARNING_STEPS': [10],
    }

    @classmethod
    def _lookup(cls, config: Mapping[str, Any], key: str) -> Any:
        value = config.get(key)
        return cls.DEFAULTS[key] if value is None else value

    @classmethod
    def build_parameters(cls, config: Mapping[str, Any]) -> SchedulerParameters:
        """Turn a config mapping (usually ``app.config``) into SchedulerParameters."""
        return SchedulerParameters(
            desired_retention=float(cls._lookup(config, 'FSRS_DESIRED_RETENTION')),
            maximum_interval=int(cls._lookup(config, 'FSRS_MAX_INTERVAL')),
            enable_fuzz=bool(cls._lookup(config, 'FSRS_ENABLE_FUZZ')),
            fuzz_threshold_days=float(cls._lookup(config, 'FSRS_FUZZ_THRESHOLD')),
            fuzz_factor=float(cls._lookup(config, 'FSRS_FUZZ_FACTOR')),
            weights=tuple(cls._lookup(config, 'FSRS_GLOBAL_WEIGHTS')),
        )

    @classmethod
    def init_app(cls, app) -> SchedulerParameters:
        """Build the parameters once at startup and keep them on the app."""
        parameters = cls.build_parameters(app.config)
        app.extensions[EXTENSION_KEY] = parameters
        app.logger.info(
            "FSRS parameters: retention=%s, max_interval=%s, fuzz=%s",
            parameters.desired_retention,
            parameters.maximum_interval,
            parameters.enable_fuzz,
        )
        return parameters

    @classmethod
    def get_parameters(cls, app=None) -> SchedulerParameters:
        app = app or current_app
        parameters: Optional[SchedulerParameters] = app.extensions.get(EXTENSION_KEY)
        if parameters is None:
            parameters = cls.init_app(app)
        return parameters

    @classmethod
    def default_step_config(cls, config: Optional[Mapping[str, Any]] = None) -> DeckStepConfig:
        config = config if config is not None else current_app.config
        return DeckStepConfig(
            learning_steps=tuple(cls._lookup(config, 'DEFAULT_LEARNING_STEPS')),
            relearning_steps=tuple(cls._lookup(config, 'DEFAULT_RELEARNING_STEPS')),
        )
