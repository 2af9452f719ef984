from .settings import SETTINGS_FILE_NAMES, Settings, find_settings_file, load_settings

__all__ = ["SETTINGS_FILE_NAMES", "Settings", "find_settings_file", "load_settings"]
