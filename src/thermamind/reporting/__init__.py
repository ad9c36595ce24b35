# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Terminal rendering for fleet snapshots."""

from thermamind.reporting.terminal import TerminalRenderer

__all__ = ["TerminalRenderer"]
