"""Environment variable utilities for disk configuration.

Expands ``${VAR}``, ``${VAR:default}`` and ``$VAR`` references in
configuration values and loads ``.env`` files through python-dotenv.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Optional, Union

from dotenv import load_dotenv

__all__ = ["expand_env_vars", "expand_config", "load_env_file"]

# ${VAR_NAME}, ${VAR_NAME:default} or $VAR_NAME
ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::([^}]*))?\}|\$([A-Za-z_][A-Za-z0-9_]*)")


def load_env_file(
    path: Optional[Union[str, Path]] = None,
    *,
    override: bool = False,
) -> bool:
    """Load environment variables from a .env file.

    Args:
        path: Path to .env file. If None, python-dotenv searches the
              current directory and its parents.
        override: If True, override existing environment variables.

    Returns:
        True if a .env file was found and loaded, False otherwise.
    """
    return load_dotenv(dotenv_path=path, override=override)


def expand_env_vars(value: str, *, strict: bool = False) -> str:
    """Expand environment variable references in a string.

    Args:
        value: String potentially containing env var references
        strict: If True, raise KeyError for unset variables without a default

    Example:
        >>> os.environ["BUCKET"] = "media"
        >>> expand_env_vars("s3://${BUCKET}/${PREFIX:uploads}")
        's3://media/uploads'
    """

    def replacer(match: "re.Match[str]") -> str:
        var_name = match.group(1) or match.group(3)
        default_value = match.group(2)
        env_value = os.environ.get(var_name)
        if env_value is not None:
            return env_value
        if default_value is not None:
            return default_value
        if strict:
            raise KeyError(f"Environment variable not set: {var_name}")
        # Leave the reference untouched
        return str(match.group(0))

    return ENV_VAR_PATTERN.sub(replacer, value)


def expand_config(value: Any, *, strict: bool = False) -> Any:
    """Recursively expand environment variables in a configuration tree.

    Example:
        >>> os.environ["FTP_HOST"] = "ftp.example.com"
        >>> expand_config({"host": "${FTP_HOST}", "port": 21})
        {'host': 'ftp.example.com', 'port': 21}
    """
    if isinstance(value, str):
        return expand_env_vars(value, strict=strict)
    if isinstance(value, dict):
        return {key: expand_config(item, strict=strict) for key, item in value.items()}
    if isinstance(value, list):
        return [expand_config(item, strict=strict) for item in value]
    return value
