# SPDX-License-Identifier: LGPL-3.0-or-later
# domxml/cli/__init__.py
