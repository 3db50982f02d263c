"""
Option Table - The shared flag table behind configuration resolution.

Holds the core flags and any flag a plugin adds while it is being
allocated. Parsing happens once, after every plugin exists, and yields
the resolved AgentConfig.

Example:
    options = OptionTable()
    options.add("-b", "http_bind", "Address the HTTP API listens on",
                metavar="address", default="0.0.0.0", owner="httpd")

    config = options.parse(["-d", "-c", "9000", "-b", "127.0.0.1"])
    config.port                  # "9000"
    config.option("http_bind")   # "127.0.0.1"
"""

import argparse
import re
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any

from .config import DEFAULT_PORT, DEFAULT_TIMEOUT, AgentConfig
from .errors import UsageError

__all__ = ["CORE_OWNER", "Option", "OptionTable", "parse_timeout"]

CORE_OWNER = "core"

# Leading part of a string that C strtod() would accept
_FLOAT_PREFIX = re.compile(r"\s*[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")

_FLAG = re.compile(r"-[A-Za-z]")

_HELP_COLUMN = 20


def parse_timeout(value: str) -> float:
    """Parse a timeout the way strtod() does.

    "2.5" -> 2.5, "3s" -> 3.0, "abc" -> 0.0. Callers must cope with 0.
    """
    match = _FLOAT_PREFIX.match(value)
    if match is None:
        return 0.0
    return float(match.group(0))


@dataclass(frozen=True)
class Option:
    """One entry of the flag table."""

    flag: str
    dest: str
    help: str
    metavar: str | None = None
    default: Any = None
    is_flag: bool = False
    convert: Callable[[str], Any] | None = None
    owner: str = CORE_OWNER

    @property
    def synopsis(self) -> str:
        if self.is_flag:
            return self.flag
        return f"{self.flag} {self.metavar or self.dest}"


def _core_options() -> list[Option]:
    defaults = AgentConfig()
    return [
        Option(
            "-p", "persist_dir",
            f"Persistence directory: where VCL and parameters are stored. "
            f"Default: {defaults.persist_dir}",
            metavar="directory", convert=Path,
        ),
        Option(
            "-H", "html_dir",
            f"Where /html/ is located. Default: {defaults.html_dir}",
            metavar="directory", convert=Path,
        ),
        Option("-n", "name", "Name. Should match varnishd -n option.", metavar="name"),
        Option(
            "-S", "secret_file", "Location of the varnishd secret file.",
            metavar="secretfile", convert=Path,
        ),
        Option("-T", "admin_endpoint", "Varnishd administrative interface.", metavar="host:port"),
        Option(
            "-t", "timeout",
            f"Timeout for talking to varnishd (default: {DEFAULT_TIMEOUT:g}).",
            metavar="timeout", convert=parse_timeout,
        ),
        Option("-c", "port", f"TCP port (default: {DEFAULT_PORT}).", metavar="port"),
        Option("-d", "debug", "Debug. Runs in foreground.", is_flag=True),
    ]


class _Parser(argparse.ArgumentParser):
    """ArgumentParser that raises instead of exiting."""

    def error(self, message: str) -> None:  # type: ignore[override]
        raise UsageError(message)


class OptionTable:
    """Ordered table of command-line flags shared by core and plugins."""

    def __init__(self, prog: str = "varnish-agent") -> None:
        self.prog = prog
        self._options: dict[str, Option] = {}
        for option in _core_options():
            self._insert(option)

    def add(
        self,
        flag: str,
        dest: str,
        help: str,
        *,
        metavar: str | None = None,
        default: Any = None,
        is_flag: bool = False,
        convert: Callable[[str], Any] | None = None,
        owner: str,
    ) -> Option:
        """Register a plugin flag.

        Raises:
            ValueError: If the flag is malformed, reserved or already taken
        """
        option = Option(
            flag, dest, help,
            metavar=metavar,
            default=False if is_flag else default,
            is_flag=is_flag,
            convert=convert,
            owner=owner,
        )
        self._insert(option)
        return option

    def _insert(self, option: Option) -> None:
        if not _FLAG.fullmatch(option.flag):
            raise ValueError(f"Invalid flag {option.flag!r}: expected -<letter>")
        if option.flag == "-h":
            raise ValueError("-h is reserved for the usage text")
        if option.flag in self._options:
            taken = self._options[option.flag].owner
            raise ValueError(f"Flag {option.flag} already registered by {taken}")
        if any(o.dest == option.dest for o in self._options.values()):
            raise ValueError(f"Option destination {option.dest!r} already in use")
        self._options[option.flag] = option

    def __iter__(self) -> Iterator[Option]:
        return iter(self._options.values())

    def __len__(self) -> int:
        return len(self._options)

    def __contains__(self, flag: str) -> bool:
        return flag in self._options

    def plugin_options(self) -> list[Option]:
        return [o for o in self if o.owner != CORE_OWNER]

    def usage(self) -> str:
        """Render the usage text."""
        parts = [f"[{o.synopsis}]" for o in self if not o.is_flag]
        parts += ["[-h]"] + [f"[{o.synopsis}]" for o in self if o.is_flag]

        lines = ["Varnish Agent usage:"]
        line = self.prog
        for part in parts:
            if len(line) + len(part) + 1 > 72:
                lines.append(line)
                line = "  "
            line += f" {part}"
        lines.append(line)
        lines.append("")

        for option in self:
            label = option.synopsis
            if option.owner != CORE_OWNER and option.default not in (None, False):
                text = f"{option.help} (default: {option.default})"
            else:
                text = option.help
            lines.append(f"{label:<{_HELP_COLUMN}}{text}")
        lines.append(f"{'-h':<{_HELP_COLUMN}}Prints this.")
        lines.append("")
        lines.append("All arguments are optional.")
        return "\n".join(lines)

    def _build_parser(self) -> argparse.ArgumentParser:
        parser = _Parser(prog=self.prog, add_help=False, allow_abbrev=False)
        parser.add_argument("-h", dest="_help", action="store_true")
        for option in self:
            if option.is_flag:
                parser.add_argument(option.flag, dest=option.dest, action="store_true")
            else:
                parser.add_argument(option.flag, dest=option.dest, metavar=option.metavar)
        return parser

    def _attach_values(self, argv: Sequence[str]) -> list[str]:
        """Glue a dash-led value onto its flag ('-n', '-x' -> '-n-x').

        argparse would read the value as another flag; getopt does not.
        """
        takes_value = {o.flag for o in self if not o.is_flag}
        args = list(argv)
        out: list[str] = []
        i = 0
        while i < len(args):
            arg = args[i]
            if arg == "--":
                out.extend(args[i:])
                break
            if arg in takes_value and i + 1 < len(args) and args[i + 1].startswith("-"):
                out.append(arg + args[i + 1])
                i += 2
                continue
            out.append(arg)
            i += 1
        return out

    def parse(self, argv: Sequence[str]) -> AgentConfig:
        """Resolve arguments into a configuration.

        Unset flags keep their defaults. Flags may appear in any order.

        Raises:
            UsageError: On -h, an unknown flag, a missing value or a
                positional argument
        """
        namespace = self._build_parser().parse_args(self._attach_values(argv))
        if namespace._help:
            raise UsageError()

        values = vars(namespace)
        resolved: dict[str, Any] = {}
        plugin_values: dict[str, Any] = {}

        for option in self:
            raw = values[option.dest]
            if option.owner == CORE_OWNER:
                if option.is_flag:
                    if raw:
                        resolved[option.dest] = True
                elif raw is not None:
                    resolved[option.dest] = option.convert(raw) if option.convert else raw
            elif option.is_flag:
                plugin_values[option.dest] = bool(raw)
            elif raw is None:
                plugin_values[option.dest] = option.default
            else:
                plugin_values[option.dest] = option.convert(raw) if option.convert else raw

        return AgentConfig(**resolved, plugin_options=MappingProxyType(plugin_values))
