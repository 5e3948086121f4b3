"""
Configuration management for the Health Connect consent engine
Feature toggles that hide permissions, storage and logging settings
"""

from pydantic_settings import BaseSettings
from pydantic import Field


class ConsentFlowConfig(BaseSettings):
    """Consent flow configuration settings"""

    # Feature flags gating which permissions may be requested
    history_read_enabled: bool = Field(default=True, description="Offer READ_HEALTH_DATA_HISTORY")
    background_read_enabled: bool = Field(default=True, description="Offer READ_HEALTH_DATA_IN_BACKGROUND")
    skin_temperature_enabled: bool = Field(default=True)
    planned_exercise_enabled: bool = Field(default=True)
    session_types_enabled: bool = Field(default=True, description="Exercise, sleep and mindfulness sessions")
    personal_health_records_enabled: bool = Field(default=True, description="Medical permissions")

    # Platform availability
    health_platform_available: bool = Field(default=True)

    # Storage
    database_url: str = Field(default="sqlite:///health_permissions.db")

    # Environment-specific overrides
    debug_mode: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    model_config = {"env_prefix": "HC_CONSENT_", "case_sensitive": False}


# Global configuration instance
consent_config = ConsentFlowConfig()


def get_consent_config() -> ConsentFlowConfig:
    """Get the global consent flow configuration instance"""
    return consent_config


def update_consent_config(**kwargs) -> ConsentFlowConfig:
    """Update consent flow configuration with new values"""
    global consent_config
    for key, value in kwargs.items():
        if hasattr(consent_config, key):
            setattr(consent_config, key, value)
    return consent_config
