"""Configuration handling for the Hacker News tracker."""

import os
from dataclasses import dataclass, field, fields, is_dataclass
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

DEFAULT_CONFIG_PATH = "config.yaml"


@dataclass
class ScraperConfig:
    """Outbound request configuration."""

    root_url: str = "https://news.ycombinator.com/"
    user_agent: str = "hn_tracker/0.1"
    request_timeout_sec: float = 15.0


@dataclass
class SelectorConfig:
    """CSS selectors and class names describing the site's row layout."""

    # Front page
    main_table: str = "#hnmain tr table tr"
    spacer_class: str = "spacer"
    title_class: str = "athing"
    comment_class: str = "comtr"
    subtext: str = "td.subtext"
    rank: str = "span.rank"
    title_link: str = ".title a"
    score: str = "span.score"
    subtext_links: str = "a"

    # Comment page
    comment_row: str = "tr.athing.comtr"
    indent: str = "td.ind img"
    indent_attr: str = "width"
    comment_head_links: str = "span.comhead a.hnuser, span.comhead span.age a"
    comment_body: str = "div.comment"
    comment_font: str = "font"
    comment_text: str = ".commtext"
    reply: str = ".reply"


@dataclass
class MonitoringConfig:
    """Monitoring configuration."""

    enable_prometheus: bool = True
    prometheus_port: int = 8000


@dataclass
class PostgresConfig:
    """PostgreSQL connection configuration."""

    host: str = "localhost"
    port: int = 5432
    database: str = "hackernews"
    user: str = "postgres"
    password: str = ""
    pool_size: int = 5
    max_overflow: int = 10
    pool_recycle: int = 1800
    # Full SQLAlchemy URL; takes precedence over the individual parts
    url: Optional[str] = None

    @property
    def database_url(self) -> str:
        """SQLAlchemy URL for this configuration."""
        if self.url:
            return self.url
        return (
            f"postgresql+psycopg2://{self.user}:{self.password}"
            f"@{self.host}:{self.port}/{self.database}"
        )

    @property
    def is_postgres(self) -> bool:
        return self.database_url.startswith("postgresql")


def _merge_section(target: Any, values: Dict[str, Any]) -> None:
    """Merge a YAML mapping into a dataclass instance, recursing into nested sections."""
    known = {f.name for f in fields(target)}
    for key, value in values.items():
        if key not in known:
            continue
        current = getattr(target, key)
        if is_dataclass(current) and isinstance(value, dict):
            _merge_section(current, value)
        else:
            setattr(target, key, value)


@dataclass
class Config:
    """Application configuration combining environment variables and YAML config."""

    log_level: str = "INFO"
    log_file: str = "logs/hn_tracker.log"
    scraper: ScraperConfig = field(default_factory=ScraperConfig)
    selectors: SelectorConfig = field(default_factory=SelectorConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)
    postgres: PostgresConfig = field(default_factory=PostgresConfig)

    @classmethod
    def from_files(cls, config_path: Optional[str] = None, env_path: Optional[str] = None) -> "Config":
        """
        Load configuration from a YAML file and environment variables.

        Environment variables provide the connection settings and user agent;
        values present in the YAML file take precedence over them.

        Args:
            config_path: Path to YAML configuration file. Defaults to the
                ``HN_TRACKER_CONFIG`` environment variable, then ``config.yaml``.
            env_path: Optional path to .env file (defaults to .env in current directory)

        Returns:
            Config instance with merged configuration
        """
        if env_path:
            load_dotenv(env_path)
        else:
            load_dotenv()

        if config_path is None:
            config_path = os.getenv("HN_TRACKER_CONFIG", DEFAULT_CONFIG_PATH)

        config = cls()
        config.scraper.user_agent = os.getenv("HN_USER_AGENT", config.scraper.user_agent)
        config.postgres = PostgresConfig(
            host=os.getenv("PG_HOST", "localhost"),
            port=int(os.getenv("PG_PORT", "5432")),
            database=os.getenv("PG_DB", "hackernews"),
            user=os.getenv("PG_USER", "postgres"),
            password=os.getenv("PG_PASSWORD", ""),
            url=os.getenv("DATABASE_URL") or None,
        )

        if os.path.exists(config_path):
            with open(config_path, "r", encoding="utf-8") as file:
                yaml_config = yaml.safe_load(file)
            if isinstance(yaml_config, dict):
                _merge_section(config, yaml_config)

        return config

    def validate(self) -> List[str]:
        """
        Validate configuration and return a list of validation errors.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        if not self.scraper.root_url:
            errors.append("scraper.root_url must not be empty")
        if self.scraper.request_timeout_sec <= 0:
            errors.append("scraper.request_timeout_sec must be greater than 0")

        if not self.postgres.url:
            if not self.postgres.host:
                errors.append("PG_HOST must be specified")
            if self.postgres.port <= 0:
                errors.append("PG_PORT must be a positive integer")
            if not self.postgres.database:
                errors.append("PG_DB must be specified")
            if not self.postgres.user:
                errors.append("PG_USER must be specified")

        if self.monitoring.enable_prometheus and not 0 < self.monitoring.prometheus_port < 65536:
            errors.append("monitoring.prometheus_port must be between 1 and 65535")

        return errors
