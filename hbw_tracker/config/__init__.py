from .config_manager import UserPreferences, config_dir, default_prefs_file

__all__ = ['UserPreferences', 'config_dir', 'default_prefs_file']
