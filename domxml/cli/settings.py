# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# domxml/cli/settings.py
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from ..core.exceptions import wrap_fatal

DEFAULT_URI = "qemu+tcp://10.30.0.1/system"
DEFAULT_CONNECT_TIMEOUT_S = 2.0

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def _env_float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        v = float(raw.strip())
    except ValueError as e:
        raise wrap_fatal(f"{key} must be a number of seconds, got {raw!r}", e, code=2, variable=key) from e
    if v <= 0:
        raise wrap_fatal(f"{key} must be > 0, got {raw!r}", code=2, variable=key)
    return v


def _env_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        v = int(raw.strip())
    except ValueError as e:
        raise wrap_fatal(f"{key} must be an integer, got {raw!r}", e, code=2, variable=key) from e
    if v < 0:
        raise wrap_fatal(f"{key} must be >= 0, got {raw!r}", code=2, variable=key)
    return v


def _env_bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    raw = env.get(key)
    if raw is None:
        return default
    v = raw.strip().lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    raise wrap_fatal(f"{key} must be a boolean (1/0, true/false, yes/no), got {raw!r}", code=2, variable=key)


@dataclass(frozen=True)
class Settings:
    """
    Runtime settings for the `domxml` command.

    The command takes no flags; everything comes from DOMXML_* environment
    variables:

      DOMXML_URI               libvirt URI (default qemu+tcp://10.30.0.1/system)
      DOMXML_CONNECT_TIMEOUT   dial timeout in seconds (default 2)
      DOMXML_VERBOSE           0..3, like -v/-vv/-vvv
      DOMXML_LOG_FILE          also log to this file
      DOMXML_JSON_LOGS         NDJSON logs on stderr
    """
    uri: str = DEFAULT_URI
    connect_timeout_s: float = DEFAULT_CONNECT_TIMEOUT_S
    verbose: int = 0
    log_file: Optional[str] = None
    json_logs: bool = False

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env
        uri = (env.get("DOMXML_URI") or "").strip() or DEFAULT_URI
        log_file = (env.get("DOMXML_LOG_FILE") or "").strip() or None
        return cls(
            uri=uri,
            connect_timeout_s=_env_float(env, "DOMXML_CONNECT_TIMEOUT", DEFAULT_CONNECT_TIMEOUT_S),
            verbose=_env_int(env, "DOMXML_VERBOSE", 0),
            log_file=log_file,
            json_logs=_env_bool(env, "DOMXML_JSON_LOGS", False),
        )


__all__ = ["DEFAULT_URI", "Settings"]
