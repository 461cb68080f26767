# SPDX-License-Identifier: LGPL-3.0-or-later
# domxml/connection/__init__.py
from .session import DomainSummary, HypervisorSession, connect, open_session

__all__ = ["DomainSummary", "HypervisorSession", "connect", "open_session"]
