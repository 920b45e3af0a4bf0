"""Configuration management for crawlforge."""

from __future__ import annotations

from pathlib import Path
from typing import Literal, Self

import yaml
from pydantic import BaseModel, Field, ValidationError

from crawlforge.console import console
from crawlforge.errors import ConfigLoadingError

CONFIG_FILE_NAME = "crawlforge.yaml"


class ViewportConfig(BaseModel):
    """Viewport configuration settings."""

    width: int = 1280
    height: int = 720


class BrowserConfig(BaseModel):
    """Browser configuration settings."""

    headless: bool = True
    viewport: ViewportConfig = Field(default_factory=ViewportConfig)


class AIConfig(BaseModel):
    """Which chat model provider and model every stage talks to."""

    connector: str = "anthropic"
    model: str = "claude-sonnet-4-5-20250929"


class CaptureConfig(BaseModel):
    """Timeouts used while capturing the list and detail pages."""

    list_timeout_ms: int = 30000
    detail_timeout_ms: int = 20000
    settle_ms: int = 2000


class AnalysisConfig(BaseModel):
    """Structure analyzer settings."""

    temperature: float = 0.1
    max_tokens: int = 4000
    list_html_limit: int = 5000
    detail_html_limit: int = 3000
    # None disables confidence gating entirely
    min_confidence: float | None = None


class GenerationConfig(BaseModel):
    """Code generator settings."""

    mode: Literal["template", "llm"] = "template"
    temperature: float = 0.2
    max_tokens: int = 8000
    output_directory: str = "crawlers"
    detail_url_template: str = "{origin}/board/view?id={id}"


class SandboxConfig(BaseModel):
    """Sandbox executor settings."""

    timeout_s: float = 60.0
    batch_size: int = 1
    temp_directory: str = ".crawlforge/tmp"
    min_title_length: int = 3
    min_content_length: int = 50


class CorrectionConfig(BaseModel):
    """Self-correction loop settings."""

    max_attempts: int = 3
    temperature: float = 0.2
    max_tokens: int = 8000


class CrawlforgeConfig(BaseModel):
    """Main crawlforge configuration."""

    ai: AIConfig = Field(default_factory=AIConfig)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    sandbox: SandboxConfig = Field(default_factory=SandboxConfig)
    correction: CorrectionConfig = Field(default_factory=CorrectionConfig)

    @classmethod
    def get_config_path(cls) -> Path:
        """Get the path to the configuration file."""
        return Path.cwd() / CONFIG_FILE_NAME

    @classmethod
    def load_config(cls, path: Path | None = None) -> Self:
        """Load configuration from a yaml file.

        When no path is given and the default ``crawlforge.yaml`` does not exist,
        defaults are returned. An explicit path that does not exist is an error.
        """
        config_path = path or cls.get_config_path()

        if not config_path.exists():
            if path is not None:
                raise ConfigLoadingError(f"Configuration file not found: {config_path}")
            console.print(f"[yellow]⚠️ No {CONFIG_FILE_NAME} found, using default settings.[/yellow]")
            console.print("Run [bold]crawlforge init[/bold] to create a configuration file.")
            return cls()

        try:
            with open(config_path, encoding="utf-8") as f:
                config_data = yaml.safe_load(f) or {}
            if not isinstance(config_data, dict):
                raise TypeError(f"expected a mapping at the top level, got {type(config_data).__name__}")
            return cls.model_validate(config_data)
        except (OSError, yaml.YAMLError, ValidationError, TypeError) as e:
            raise ConfigLoadingError(f"{e.__class__.__name__} loading {config_path}: {e}") from e

    def save(self, path: Path | None = None) -> Path:
        """Save configuration to a yaml file."""
        config_path = path or self.get_config_path()

        try:
            with open(config_path, "w", encoding="utf-8") as f:
                yaml.safe_dump(self.model_dump(), f, sort_keys=False)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigLoadingError(f"Error saving configuration to {config_path}: {e}") from e

        console.print(f"[green]Configuration saved to {config_path}[/green]")
        return config_path
