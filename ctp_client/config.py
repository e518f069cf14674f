from __future__ import annotations
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .exceptions import ConfigError
from .queue import DEFAULT_CONCURRENCY

DEFAULT_CONFIG_PATH = Path('config/ctp_config.yaml')

# YAML keys follow the platform's camelCase naming
_FIELD_MAP = {
    'projectKey': 'project_key',
    'clientId': 'client_id',
    'clientSecret': 'client_secret',
    'authUrl': 'auth_url',
    'apiUrl': 'api_url',
    'concurrency': 'concurrency',
    'scopes': 'scopes',
}

ENV_VARS = {
    'project_key': 'CTP_PROJECT_KEY',
    'client_id': 'CTP_CLIENT_ID',
    'client_secret': 'CTP_CLIENT_SECRET',
    'auth_url': 'CTP_AUTH_URL',
    'api_url': 'CTP_API_URL',
    'concurrency': 'CTP_CONCURRENCY',
    'scopes': 'CTP_SCOPES',
}


@dataclass(frozen=True)
class TenantCredentials:
    client_id: str
    client_secret: str
    project_key: str
    auth_url: str
    api_url: str
    concurrency: int = DEFAULT_CONCURRENCY
    scopes: Optional[str] = None

    def __post_init__(self) -> None:
        for name in ('client_id', 'client_secret', 'project_key', 'auth_url', 'api_url'):
            value = getattr(self, name)
            if not value or not str(value).strip():
                raise ConfigError(f"Missing required credential field: {name}")
        if self.concurrency < 1:
            raise ConfigError(f"concurrency must be >= 1, got {self.concurrency}")

    @property
    def scope(self) -> str:
        return self.scopes or f"manage_project:{self.project_key}"

    def __repr__(self) -> str:
        return (f"TenantCredentials(project_key={self.project_key!r}, client_id={self.client_id!r}, "
                f"auth_url={self.auth_url!r}, api_url={self.api_url!r}, concurrency={self.concurrency})")


def env(name: str, required: bool = True) -> Optional[str]:
    val = os.getenv(name)
    if required and (val is None or val.strip() == ''):
        raise ConfigError(f"Missing required environment variable: {name}")
    return val


def load_env_file(env_path: Path) -> None:
    """Load KEY=VALUE lines into os.environ, keeping any non-empty existing value."""
    if not env_path.exists():
        return
    for line in env_path.read_text(encoding='utf-8').splitlines():
        line = line.strip()
        if not line or line.startswith('#') or '=' not in line:
            continue
        k, v = line.split('=', 1)
        k = k.strip()
        v = v.strip().strip('"').strip("'")
        if not k:
            continue
        existing = os.environ.get(k)
        if existing is None or existing.strip() == '':
            os.environ[k] = v


def load_config(path: Optional[Path] = None) -> Dict[str, Any]:
    if path is None:
        path = Path(os.getenv('CTP_CONFIG_PATH') or DEFAULT_CONFIG_PATH)
    if not path.exists():
        return {}
    with path.open('r', encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping at top level")
    return data


def _build(raw: Dict[str, Any]) -> TenantCredentials:
    kwargs: Dict[str, Any] = {}
    for key, value in raw.items():
        field = _FIELD_MAP.get(key, key)
        if field in ENV_VARS:
            kwargs[field] = value
    missing = [f for f in ('client_id', 'client_secret', 'project_key', 'auth_url', 'api_url') if not kwargs.get(f)]
    if missing:
        raise ConfigError(f"Missing credential fields for project {raw.get('projectKey')!r}: {', '.join(missing)}")
    if kwargs.get('concurrency') is not None:
        try:
            kwargs['concurrency'] = int(kwargs['concurrency'])
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid concurrency value: {kwargs['concurrency']!r}") from e
    else:
        kwargs.pop('concurrency', None)
    return TenantCredentials(**kwargs)


def credentials_from_config(project_key: str, cfg: Dict[str, Any]) -> Optional[TenantCredentials]:
    defaults = cfg.get('defaults') or {}
    for project in cfg.get('projects') or []:
        if project.get('projectKey') == project_key:
            return _build({**defaults, **project})
    return None


def credentials_from_env(project_key: Optional[str] = None) -> TenantCredentials:
    project_key = project_key or env(ENV_VARS['project_key'])
    concurrency = os.getenv(ENV_VARS['concurrency'])
    return _build({
        'projectKey': project_key,
        'clientId': env(ENV_VARS['client_id']),
        'clientSecret': env(ENV_VARS['client_secret']),
        'authUrl': env(ENV_VARS['auth_url']),
        'apiUrl': env(ENV_VARS['api_url']),
        'concurrency': concurrency if concurrency and concurrency.strip() else None,
        'scopes': os.getenv(ENV_VARS['scopes']) or None,
    })


def load_credentials(project_key: Optional[str] = None, path: Optional[Path] = None) -> TenantCredentials:
    """Resolve credentials for a tenant: config file first, environment second."""
    if project_key:
        creds = credentials_from_config(project_key, load_config(path))
        if creds is not None:
            return creds
    return credentials_from_env(project_key)
