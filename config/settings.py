"""Configuration settings and data models."""

from typing import Dict, Optional, Literal
from pydantic import BaseModel, Field, field_validator, model_validator
import yaml
from pathlib import Path


SUPPORTED_PROVIDERS = ("ollama", "openrouter")


class ModelConfig(BaseModel):
    """Configuration for a model bound to a debate agent."""

    name: str = Field(..., description="Model name (e.g., 'llama3.2:3b' for Ollama, 'openai/gpt-4' for OpenRouter)")
    provider: str = Field(default="ollama", description="Model provider (ollama, openrouter)")
    max_tokens: int = Field(default=400, description="Maximum tokens per response")
    temperature: float = Field(default=0.7, description="Model temperature")

    @field_validator('provider')
    @classmethod
    def validate_provider(cls, v: str) -> str:
        if v not in SUPPORTED_PROVIDERS:
            raise ValueError(f"Provider must be one of: {list(SUPPORTED_PROVIDERS)}")
        return v


class DebateDefaults(BaseModel):
    """Defaults applied to newly created debates."""

    max_rounds: int = Field(default=10, ge=1, le=20, description="Rounds per debate")
    judge_weight: float = Field(default=0.5, ge=0.0, le=1.0, description="Weight of judge totals in the verdict")
    audience_weight: float = Field(default=0.5, ge=0.0, le=1.0, description="Weight of audience votes in the verdict")
    round_delay_seconds: float = Field(
        default=0.0, ge=0.0, description="Pause between rounds so observers can catch up"
    )

    @model_validator(mode="after")
    def validate_weights(self) -> "DebateDefaults":
        if abs(self.judge_weight + self.audience_weight - 1.0) > 0.01:
            raise ValueError("judge_weight + audience_weight must equal 1.0")
        return self


class ScoringConfig(BaseModel):
    """Judge scoring configuration."""

    draw_threshold: float = Field(
        default=0.1, ge=0.0, description="Absolute score difference below which a result is a draw"
    )
    foul_penalty: int = Field(default=2, ge=0, description="Points deducted per foul")


class VotingConfig(BaseModel):
    """Audience voting configuration."""

    max_concurrent_votes: int = Field(
        default=3, ge=1, description="Audience vote calls allowed in flight at once"
    )
    fallback_confidence: float = Field(
        default=0.5, ge=0.0, le=1.0, description="Confidence assigned to votes derived from judge scores"
    )


class EventBusConfig(BaseModel):
    """Real-time event delivery configuration."""

    debounce_ms: int = Field(default=10, ge=0, description="Coalescing window for broadcasts")
    teardown_grace_seconds: float = Field(
        default=5.0, ge=0.0, description="Delay before a finished debate's channel is torn down"
    )


class OrchestratorConfig(BaseModel):
    """Debate orchestration configuration."""

    max_concurrent_debates: int = Field(
        default=3, ge=1, description="Debates allowed to run at the same time"
    )


class OllamaConfig(BaseModel):
    """Ollama-specific configuration."""

    keep_alive: Optional[str] = Field(
        default="5m", description="How long to keep models loaded (e.g., '5m', '1h', '0' for immediate unload)"
    )
    repeat_penalty: Optional[float] = Field(
        default=1.1, description="Penalty for repetition in responses"
    )
    timeout: float = Field(default=120.0, description="API request timeout in seconds")


class OpenRouterConfig(BaseModel):
    """OpenRouter-specific configuration."""

    api_key: Optional[str] = Field(
        default=None, description="OpenRouter API key (can also be set via OPENROUTER_API_KEY env var)"
    )
    base_url: str = Field(
        default="https://openrouter.ai/api/v1", description="OpenRouter API base URL"
    )
    site_url: Optional[str] = Field(
        default=None, description="Your site URL for OpenRouter referrer tracking"
    )
    app_name: Optional[str] = Field(
        default="Debate Arena", description="App name for OpenRouter tracking"
    )
    max_retries: int = Field(
        default=3, description="Maximum number of API call retries"
    )
    timeout: int = Field(
        default=60, description="API request timeout in seconds"
    )


class SystemConfig(BaseModel):
    """System-wide configuration."""

    ollama_base_url: str = Field(
        default="http://localhost:11434", description="Ollama API URL"
    )
    ollama: OllamaConfig = Field(
        default_factory=OllamaConfig, description="Ollama-specific settings"
    )
    openrouter: OpenRouterConfig = Field(
        default_factory=OpenRouterConfig, description="OpenRouter-specific settings"
    )
    database_path: str = Field(default="debates.db", description="SQLite database file")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")


class AppConfig(BaseModel):
    """Complete application configuration."""

    debate: DebateDefaults = Field(default_factory=DebateDefaults)
    models: Dict[str, ModelConfig] = Field(default_factory=dict)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    voting: VotingConfig = Field(default_factory=VotingConfig)
    events: EventBusConfig = Field(default_factory=EventBusConfig)
    orchestrator: OrchestratorConfig = Field(default_factory=OrchestratorConfig)
    system: SystemConfig = Field(default_factory=SystemConfig)

    @classmethod
    def load_from_file(cls, config_path: Path) -> "AppConfig":
        """Load configuration from JSON file."""
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        import json

        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)

        # Validate required sections
        required_sections = ["debate", "system"]
        missing_sections = [
            section for section in required_sections if section not in data
        ]
        if missing_sections:
            raise ValueError(f"Missing required config sections: {missing_sections}")

        return cls(**data)

    def save_to_file(self, config_path: Path) -> None:
        """Save configuration to YAML file."""
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w", encoding="utf-8") as f:
            yaml.dump(
                self.model_dump(exclude_unset=True),
                f,
                default_flow_style=False,
                indent=2,
            )


def get_default_config() -> AppConfig:
    """Load default configuration from debate_config.json, creating it if needed."""
    config_path = Path("debate_config.json")
    if not config_path.exists():
        template_config = get_template_config()
        import json
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(template_config.model_dump(), f, indent=2)
    return AppConfig.load_from_file(config_path)


def get_template_config() -> AppConfig:
    """Get template configuration for config file generation."""
    return AppConfig(
        debate=DebateDefaults(
            max_rounds=10,
            judge_weight=0.5,
            audience_weight=0.5,
        ),
        models={
            "debater": ModelConfig(
                name="qwen2.5:7b",
                provider="ollama",
                max_tokens=400,
                temperature=0.8,
            ),
            "judge": ModelConfig(
                name="openai/gpt-4o-mini",
                provider="openrouter",
                max_tokens=300,
                temperature=0.2,
            ),
        },
        system=SystemConfig(
            ollama_base_url="http://localhost:11434",
            openrouter=OpenRouterConfig(
                api_key=None,  # Set your OpenRouter API key here or use OPENROUTER_API_KEY env var
                base_url="https://openrouter.ai/api/v1",
                app_name="Debate Arena",
                max_retries=3,
                timeout=60,
            ),
            database_path="debates.db",
            log_level="INFO",
        ),
    )
