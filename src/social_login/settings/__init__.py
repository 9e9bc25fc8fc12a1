from social_login.settings.config import HttpSettings, LoggingSettings, ProviderSettings, Settings, get_settings

__all__ = ["HttpSettings", "LoggingSettings", "ProviderSettings", "Settings", "get_settings"]
