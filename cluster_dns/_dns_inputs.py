"""Resolve DNS manifest generation inputs from arguments and environment.

Values come from an explicit argument first, then an environment variable,
then a default. Required values that resolve to nothing raise
:class:`InstallConfigError`.

Classes
-------
InputResolution
    Where and how to look up a single input.
DNSInputs
    Immutable dataclass holding resolved generation inputs.
RawDNSInputs
    Dataclass representing unvalidated inputs from callers or defaults.
"""

from __future__ import annotations

import os
from collections import abc as cabc
from dataclasses import dataclass
from pathlib import Path

from cluster_dns._dns_errors import InstallConfigError

__all__ = [
    "DNSInputs",
    "InputResolution",
    "RawDNSInputs",
    "resolve_dns_inputs",
    "resolve_input",
]


@dataclass(frozen=True, slots=True)
class InputResolution:
    """Where one generation input comes from and how it is normalized.

    Attributes
    ----------
    env_key : str
        Environment variable consulted when no argument is given.
    default : str | Path | None
        Value used when neither source supplies one.
    required : bool
        Whether a missing value is an error instead of ``default``.
    as_path : bool
        Whether the value is returned as a :class:`Path`.
    """

    env_key: str
    default: str | Path | None = None
    required: bool = False
    as_path: bool = False

    def normalize(self, value: str | Path) -> str | Path:
        if self.as_path:
            return value if isinstance(value, Path) else Path(value.strip())
        return str(value).strip()


def _is_blank(value: str | Path | None) -> bool:
    return value is None or not str(value).strip()


def resolve_input(
    param_value: str | Path | None,
    resolution: InputResolution,
    env: cabc.Mapping[str, str] | None = None,
) -> str | Path | None:
    """Return the first non-blank value from the argument or the environment.

    Blank arguments fall through to the environment the same way ``None``
    does, so an empty value can never reach the resolver.

    Raises
    ------
    InstallConfigError
        If a required input is blank in every source.

    Examples
    --------
    >>> resolve_input(None, InputResolution(env_key="INFRA_ID"), {"INFRA_ID": "demo-x1y2z"})
    'demo-x1y2z'
    >>> resolve_input("  ", InputResolution(env_key="INFRA_ID", default="x"), {})
    'x'
    """
    source = os.environ if env is None else env
    for candidate in (param_value, source.get(resolution.env_key)):
        if not _is_blank(candidate):
            return resolution.normalize(candidate)

    if resolution.required:
        msg = f"{resolution.env_key} is required: pass it explicitly or set it in the environment"
        raise InstallConfigError(msg)
    return resolution.default


@dataclass(frozen=True, slots=True)
class DNSInputs:
    """Inputs for DNS manifest generation.

    Attributes
    ----------
    install_config_path : Path
        Install-config YAML to read.
    infra_id : str
        Infrastructure ID generated for this install attempt.
    output_dir : Path
        Directory that receives ``manifests/cluster-dns-02-config.yml``.
    """

    install_config_path: Path
    infra_id: str
    output_dir: Path


@dataclass(frozen=True, slots=True)
class RawDNSInputs:
    """Raw DNS generation inputs from callers or defaults."""

    install_config_path: Path | None = None
    infra_id: str | None = None
    output_dir: Path | None = None


def _to_path(value: Path | str | None) -> Path:
    return value if isinstance(value, Path) else Path(str(value))


def resolve_dns_inputs(
    raw: RawDNSInputs,
    env: cabc.Mapping[str, str] | None = None,
) -> DNSInputs:
    """Resolve DNS generation inputs from arguments and environment.

    Parameters
    ----------
    raw : RawDNSInputs
        Caller-supplied values; ``None`` fields fall back to the environment.
    env : Mapping[str, str] | None, optional
        Environment to read (defaults to ``os.environ``).

    Returns
    -------
    DNSInputs
        Normalized inputs ready for use.

    Examples
    --------
    >>> resolve_dns_inputs(
    ...     RawDNSInputs(infra_id="demo-x1y2z"),
    ...     {"INSTALL_CONFIG": "install-config.yaml"},
    ... ).output_dir
    PosixPath('.')
    """
    install_config_path = resolve_input(
        raw.install_config_path,
        InputResolution(env_key="INSTALL_CONFIG", required=True, as_path=True),
        env,
    )
    infra_id = resolve_input(
        raw.infra_id, InputResolution(env_key="INFRA_ID", required=True), env
    )
    output_dir = resolve_input(
        raw.output_dir,
        InputResolution(env_key="MANIFEST_OUTPUT_DIR", default=Path("."), as_path=True),
        env,
    )
    return DNSInputs(
        install_config_path=_to_path(install_config_path),
        infra_id=str(infra_id),
        output_dir=_to_path(output_dir),
    )
