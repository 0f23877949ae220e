"""Configuration management for Tugboat."""

import json
import logging
import os
import shutil
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Optional, List, Dict, Any

from dotenv import load_dotenv

from .errors import ConfigurationError

PROVIDER_TYPES = ("gitea", "github")
CLONE_PROTOCOLS = ("https", "ssh", "auto")
VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
DEFAULT_GITHUB_API_URL = "https://api.github.com"

logger = logging.getLogger('tugboat.config')


def expand_path(path: str) -> str:
    """Expand a leading ~ and return an absolute path string."""
    return str(Path(path).expanduser().absolute())


@dataclass
class CloneOptions:
    protocol: str = "https"


@dataclass
class SyncOptions:
    ff_only: bool = True


@dataclass
class ProviderConfig:
    """How to talk to one remote hosting service."""
    type: str
    api_url: str = ""
    token: str = ""
    clone: CloneOptions = field(default_factory=CloneOptions)
    sync: SyncOptions = field(default_factory=SyncOptions)


@dataclass(frozen=True)
class Target:
    """A checkout target: a whole organization, or one repository when `repo` is set."""
    name: str
    provider: str
    org: str
    path: str
    repo: Optional[str] = None

    @property
    def is_organization(self) -> bool:
        return not self.repo


@dataclass
class Config:
    """Tugboat configuration with validation and defaults."""

    providers: Dict[str, ProviderConfig] = field(default_factory=dict)
    targets: List[Target] = field(default_factory=list)

    # Parallelism; 0 means one worker per CPU
    workers: int = 0

    # Logging
    log_level: str = "INFO"

    # Clone retry policy
    git_retry_attempts: int = 3
    git_retry_delay: float = 1.0

    def __post_init__(self):
        """Validate configuration after initialization."""
        self.log_level = self.log_level.upper()
        if self.log_level not in VALID_LOG_LEVELS:
            raise ConfigurationError(f"Invalid log level: {self.log_level}. Must be one of {VALID_LOG_LEVELS}")

        if self.workers < 0:
            raise ConfigurationError("workers must be non-negative")

        if self.git_retry_attempts < 1:
            raise ConfigurationError("git_retry_attempts must be at least 1")

        if self.git_retry_delay < 0:
            raise ConfigurationError("git_retry_delay must be non-negative")

        names = set()
        for target in self.targets:
            if target.name in names:
                raise ConfigurationError(f"duplicate target name {target.name!r}")
            names.add(target.name)

    def provider_for(self, target: Target) -> ProviderConfig:
        return self.providers[target.provider]

    def ff_only_for(self, target: Target) -> bool:
        provider = self.providers.get(target.provider)
        return provider.sync.ff_only if provider else True

    def get_target(self, name: str) -> Optional[Target]:
        for target in self.targets:
            if target.name == name:
                return target
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize in the current (v2) file format."""
        providers = {}
        for name, p in self.providers.items():
            providers[name] = {
                "type": p.type,
                "api_url": p.api_url,
                "token": p.token,
                "options": {
                    "clone": {"protocol": p.clone.protocol},
                    "sync": {"ff_only": p.sync.ff_only},
                },
            }
        targets = []
        for t in self.targets:
            entry = {k: v for k, v in asdict(t).items() if v}
            targets.append(entry)
        data: Dict[str, Any] = {"version": 2, "providers": providers, "targets": targets}
        if self.workers:
            data["workers"] = self.workers
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2) + "\n"


@dataclass
class LoadResult:
    """A loaded configuration plus metadata about where it came from."""
    config: Config
    version: int
    config_path: Optional[Path] = None

    @property
    def is_deprecated(self) -> bool:
        return self.version < 2


def detect_version(data: Dict[str, Any]) -> int:
    """Return 1 for the legacy Gitea-only format, 2 for the multi-provider format."""
    if not isinstance(data, dict):
        raise ConfigurationError("unrecognized config format: expected a JSON object")
    if data.get("providers") is not None:
        return 2
    version = data.get("version")
    if isinstance(version, int) and version > 0:
        return version
    if data.get("gitea_url"):
        return 1
    raise ConfigurationError("unrecognized config format: missing 'providers' (v2) or 'gitea_url' (v1)")


def _read_v1(data: Dict[str, Any]) -> Dict[str, Any]:
    """Migrate a legacy v1 document to the v2 document shape."""
    gitea_url = data.get("gitea_url") or ""
    token = data.get("gitea_token") or ""
    organizations = data.get("organizations") or []
    if not gitea_url:
        raise ConfigurationError("gitea_url is required")
    if not token:
        raise ConfigurationError("gitea_token is required")
    if not organizations:
        raise ConfigurationError("at least one organization must be configured")

    return {
        "providers": {
            "gitea": {
                "type": "gitea",
                "api_url": gitea_url.rstrip("/"),
                "token": token,
                "options": {"clone": {"protocol": "https"}},
            }
        },
        "targets": [
            {"name": org.get("name", ""), "provider": "gitea", "org": org.get("name", ""), "path": org.get("path", "")}
            for org in organizations
        ],
    }


def _parse_provider(name: str, raw: Dict[str, Any]) -> ProviderConfig:
    ptype = raw.get("type", "")
    if ptype not in PROVIDER_TYPES:
        raise ConfigurationError(f"provider {name!r} has unsupported type {ptype!r}")

    api_url = (raw.get("api_url") or "").rstrip("/")
    if not api_url:
        if ptype == "github":
            api_url = DEFAULT_GITHUB_API_URL
        else:
            raise ConfigurationError(f"provider {name!r} (gitea) requires api_url")

    token = raw.get("token") or ""
    if not token and ptype == "gitea":
        token = os.getenv("GITEA_TOKEN", "")
    if not token:
        raise ConfigurationError(f"provider {name!r} requires token")

    options = raw.get("options") or {}
    protocol = (options.get("clone") or {}).get("protocol") or "https"
    if protocol not in CLONE_PROTOCOLS:
        raise ConfigurationError(f"provider {name!r} has unsupported clone protocol {protocol!r}")
    ff_only = (options.get("sync") or {}).get("ff_only")

    return ProviderConfig(
        type=ptype,
        api_url=api_url,
        token=token,
        clone=CloneOptions(protocol=protocol),
        sync=SyncOptions(ff_only=True if ff_only is None else bool(ff_only)),
    )


def _parse_targets(raw_targets: List[Dict[str, Any]], providers: Dict[str, ProviderConfig]) -> List[Target]:
    targets = []
    for i, raw in enumerate(raw_targets):
        provider = raw.get("provider") or ""
        org = raw.get("org") or ""
        repo = raw.get("repo") or None
        path = raw.get("path") or ""
        if not provider:
            raise ConfigurationError(f"target {i} missing provider")
        if provider not in providers:
            raise ConfigurationError(f"target {i} references unknown provider {provider!r}")
        if not org:
            raise ConfigurationError(f"target {i} missing org")
        if not path:
            raise ConfigurationError(f"target {org} missing path")
        name = raw.get("name") or repo or org
        targets.append(Target(name=name, provider=provider, org=org, repo=repo, path=expand_path(path)))
    return targets


def parse_config(data: Dict[str, Any], **overrides) -> LoadResult:
    """Parse a decoded config document of either version into a validated Config."""
    version = detect_version(data)
    if version == 1:
        document = _read_v1(data)
    elif version == 2:
        document = data
    else:
        raise ConfigurationError(f"unsupported config version: {version}")

    raw_providers = document.get("providers") or {}
    if not raw_providers:
        raise ConfigurationError("at least one provider must be configured")
    providers = {name: _parse_provider(name, raw) for name, raw in raw_providers.items()}

    raw_targets = document.get("targets") or []
    if not raw_targets:
        raise ConfigurationError("at least one target must be configured")
    targets = _parse_targets(raw_targets, providers)

    settings = {"workers": int(document.get("workers") or 0)}
    settings.update(overrides)
    config = Config(providers=providers, targets=targets, **settings)
    return LoadResult(config=config, version=version)


def find_config_path() -> Optional[Path]:
    """Locate the config file: TUGBOAT_CONFIG, then XDG, then the home directory."""
    env_path = os.getenv("TUGBOAT_CONFIG")
    if env_path:
        return Path(env_path).expanduser()

    candidates = []
    xdg = os.getenv("XDG_CONFIG_HOME")
    if xdg:
        candidates.append(Path(xdg) / "tugboat" / "config.json")
    home = Path.home()
    candidates.append(home / ".config" / "tugboat" / "config.json")
    candidates.append(home / ".tugboat.json")

    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return None


def load_configuration(config_path: Optional[Path] = None) -> LoadResult:
    """Load configuration from file, with environment overrides."""
    load_dotenv()

    path = config_path or find_config_path()
    if path is None:
        raise ConfigurationError("no config file found")

    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigurationError(f"reading config file {path}: {e}")
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"parsing config file {path}: {e}")

    overrides = {}
    if os.getenv("TUGBOAT_LOG_LEVEL"):
        overrides["log_level"] = os.environ["TUGBOAT_LOG_LEVEL"]
    try:
        if os.getenv("TUGBOAT_GIT_RETRY_ATTEMPTS"):
            overrides["git_retry_attempts"] = int(os.environ["TUGBOAT_GIT_RETRY_ATTEMPTS"])
        if os.getenv("TUGBOAT_GIT_RETRY_DELAY"):
            overrides["git_retry_delay"] = float(os.environ["TUGBOAT_GIT_RETRY_DELAY"])
    except ValueError as e:
        raise ConfigurationError(f"Configuration error: {e}")

    result = parse_config(data, **overrides)
    result.config_path = Path(path)

    if result.is_deprecated:
        logger.warning("Using deprecated v1 config format. Run 'tugboat migrate' to upgrade.")
    return result


def migrate_config_file(config_path: Path) -> bool:
    """
    Rewrite a v1 config file in the v2 format.

    A copy of the original is kept next to it with a `.bak` suffix.

    Returns:
        True if the file was migrated, False if it was already current
    """
    data = json.loads(config_path.read_text(encoding="utf-8"))
    result = parse_config(data)
    if not result.is_deprecated:
        logger.info(f"Config {config_path} is already version {result.version}")
        return False

    backup_path = config_path.with_name(config_path.name + ".bak")
    shutil.copy2(config_path, backup_path)
    config_path.write_text(result.config.to_json(), encoding="utf-8")
    logger.info(f"Migrated {config_path} to v2 (backup: {backup_path})")
    return True
