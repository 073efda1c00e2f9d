"""
PyHeaderBlock Configuration System

Configuration models for the header/IP filter and the application that hosts
it, with YAML file loading and environment overrides.
"""

import yaml
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError


class LogLevel(str, Enum):
    """Logging levels"""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class LogFormat(str, Enum):
    """Log output formats"""
    JSON = "json"
    TEXT = "text"


class HeaderRuleConfig(BaseModel):
    """One header rule: a name pattern and/or a value pattern.

    The keys follow the plugin configuration format, ``header`` for the
    name pattern and ``env`` for the value pattern. Either may be empty.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str = Field(default="", alias="header", description="Header name regular expression")
    value: str = Field(default="", alias="env", description="Header value regular expression")

    @field_validator('name', 'value', mode='before')
    @classmethod
    def none_as_empty(cls, v):
        return "" if v is None else v


class HeaderBlockConfig(BaseModel):
    """Filter configuration"""
    model_config = ConfigDict(populate_by_name=True)

    request_headers: List[HeaderRuleConfig] = Field(
        default_factory=list,
        alias="requestHeaders",
        description="Block rules"
    )
    whitelist_request_headers: List[HeaderRuleConfig] = Field(
        default_factory=list,
        alias="whitelistRequestHeaders",
        description="Rules that exempt an otherwise blocked header"
    )
    allowed_ips: List[str] = Field(
        default_factory=list,
        alias="allowedIPs",
        description="CIDR ranges or bare IPs, comma-separated lists allowed"
    )
    log: bool = Field(default=False, description="Emit decision log lines")

    @field_validator('request_headers', 'whitelist_request_headers', 'allowed_ips', mode='before')
    @classmethod
    def none_as_empty_list(cls, v):
        if v is None:
            return []
        return v

    @field_validator('allowed_ips', mode='before')
    @classmethod
    def single_string_as_list(cls, v):
        if isinstance(v, str):
            return [v]
        return v


def create_config() -> HeaderBlockConfig:
    """Create the default filter configuration (no rules, logging off)"""
    return HeaderBlockConfig(log=False)


class ServerConfig(BaseModel):
    """Server configuration"""
    host: str = Field(default="0.0.0.0", description="Server bind address")
    port: int = Field(default=8080, ge=1, le=65535, description="Server port")

    @field_validator('host')
    @classmethod
    def validate_host(cls, v):
        if not v or v.strip() == "":
            raise ValueError("Host cannot be empty")
        return v


class UpstreamConfig(BaseModel):
    """Upstream that allowed requests are forwarded to"""
    url: Optional[str] = Field(default=None, description="Upstream base URL")
    timeout: float = Field(default=30.0, gt=0, description="Request timeout in seconds")
    preserve_host: bool = Field(default=False, description="Forward the client's Host header")

    @field_validator('url')
    @classmethod
    def validate_url(cls, v):
        if v is None:
            return v
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Upstream URL must start with http:// or https://: {v}")
        return v.rstrip("/")


class LoggingConfig(BaseModel):
    """Logging configuration"""
    level: LogLevel = Field(default=LogLevel.INFO)
    format: LogFormat = Field(default=LogFormat.JSON)


class Settings(BaseSettings):
    """Main PyHeaderBlock configuration"""
    model_config = SettingsConfigDict(
        env_prefix="PYHEADERBLOCK_",
        env_file=".env",
        env_nested_delimiter="__",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    server: ServerConfig = Field(default_factory=ServerConfig)
    upstream: UpstreamConfig = Field(default_factory=UpstreamConfig)
    headerblock: HeaderBlockConfig = Field(default_factory=create_config)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    debug: bool = Field(default=False, description="Debug mode")
    environment: str = Field(default="production", description="Environment name")

    @model_validator(mode='after')
    def debug_logging(self):
        if self.debug:
            self.logging.level = LogLevel.DEBUG
        return self

    @classmethod
    def load_from_file(cls, config_file: Union[str, Path]) -> "Settings":
        """Load configuration from YAML file"""
        config_path = Path(config_file)

        if not config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path, 'r') as f:
                config_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in config file: {e}", cause=e)

        if not config_data:
            config_data = {}
        if not isinstance(config_data, dict):
            raise ConfigurationError(f"Configuration root must be a mapping: {config_path}")

        try:
            return cls(**config_data)
        except ValidationError as e:
            raise ConfigurationError(
                f"Failed to load config file: {config_path}",
                validation_errors=[err["msg"] for err in e.errors()],
                cause=e
            )

    def validate_config(self) -> List[str]:
        """Validate configuration and return list of errors"""
        from .rules import compile_rules

        errors = []

        for section, rules in (
            ("requestHeaders", self.headerblock.request_headers),
            ("whitelistRequestHeaders", self.headerblock.whitelist_request_headers),
        ):
            try:
                compile_rules(rules, section=section)
            except ConfigurationError as e:
                errors.append(e.message)

        return errors

    def validate_warnings(self) -> List[str]:
        """Recoverable problems: entries that are skipped at startup"""
        from .rules import invalid_allowed_ips

        return [
            f"allowedIPs entry is not a CIDR or IP and will be skipped: {entry!r}"
            for entry in invalid_allowed_ips(self.headerblock.allowed_ips)
        ]

    def get_summary(self) -> Dict[str, Any]:
        """Get configuration summary"""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "server": {
                "host": self.server.host,
                "port": self.server.port
            },
            "upstream": {
                "url": self.upstream.url,
                "timeout": self.upstream.timeout
            },
            "headerblock": {
                "block_rules": len(self.headerblock.request_headers),
                "whitelist_rules": len(self.headerblock.whitelist_request_headers),
                "allowed_ips": len(self.headerblock.allowed_ips),
                "log": self.headerblock.log
            },
            "logging": {
                "level": self.logging.level.value,
                "format": self.logging.format.value
            }
        }
