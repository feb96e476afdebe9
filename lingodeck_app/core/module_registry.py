"""Feature modules and how they are wired into the app.

A module is a package under ``lingodeck_app.modules`` with an optional
``setup_module(app)`` hook (models, signal listeners, settings) and one JSON
blueprint. Modules are set up in table order, so a module may rely on the
ones listed before it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from flask import Blueprint, Flask
from werkzeug.utils import import_string


@dataclass(frozen=True)
class ModuleDefinition:
    """A feature package, its blueprint and where the blueprint is mounted."""

    package: str
    blueprint: str
    url_prefix: Optional[str] = None

    def setup(self, app: Flask) -> str:
        """Run the package's setup hook and return its display name."""

        module = import_string(self.package)
        hook = getattr(module, "setup_module", None)
        if hook is not None:
            hook(app)
        metadata = getattr(module, "module_metadata", {})
        return metadata.get("name", self.package)

    def load_blueprint(self) -> Blueprint:
        """Import the ``module.path:attribute`` blueprint."""

        blueprint = import_string(self.blueprint)
        if not isinstance(blueprint, Blueprint):
            raise TypeError(
                "Expected '%s' to be a Flask Blueprint, got %r instead"
                % (self.blueprint, type(blueprint))
            )
        return blueprint


def register_modules(app: Flask, modules: Sequence[ModuleDefinition]) -> None:
    """Set up each module, then mount its blueprint."""

    for module in modules:
        name = module.setup(app)
        app.register_blueprint(module.load_blueprint(), url_prefix=module.url_prefix)
        app.logger.debug("Module %s mounted at %s", name, module.url_prefix or "<root>")


def register_default_modules(app: Flask) -> None:
    register_modules(app, DEFAULT_MODULES)


DEFAULT_MODULES: Sequence[ModuleDefinition] = (
    ModuleDefinition("lingodeck_app.modules.fsrs", "lingodeck_app.modules.fsrs.routes.api:api_bp", "/api/fsrs"),
    ModuleDefinition("lingodeck_app.modules.decks", "lingodeck_app.modules.decks.routes:decks_bp", "/api"),
    ModuleDefinition("lingodeck_app.modules.study", "lingodeck_app.modules.study.routes:study_bp", "/api/study"),
    ModuleDefinition("lingodeck_app.modules.stats", "lingodeck_app.modules.stats.routes:stats_bp", "/api/stats"),
)
