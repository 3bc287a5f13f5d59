"""
Config Module - Black Box Interface

Purpose: Static agent configuration
Interface: Config, Repo, parse_duration()
Hidden: Duration grammar, validation logic

The CLI layer (pico.main) maps flags and environment variables onto Config.
"""

from .provider import Config, Repo, parse_duration

__all__ = ["Config", "Repo", "parse_duration"]
