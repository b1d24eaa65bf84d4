"""Helpers for getting the current application config and globals."""

from typing import Any, Mapping, Optional

from flask import Flask, current_app, g, has_app_context

from . import config


def get_application_config(app: Optional[Flask] = None) -> Mapping:
    """
    Get the configuration of ``app``, or of the current application.

    Falls back to :mod:`keygate.config` when there is no application context,
    e.g. in command-line tools.
    """
    if app is not None:
        return app.config
    if has_app_context():
        return current_app.config
    return {name: getattr(config, name) for name in dir(config)
            if name.isupper()}


def get_application_global() -> Optional[Any]:
    """Get the application global object, if there is an app context."""
    if has_app_context():
        return g
    return None
