"""Command line interface for testing configuration loading"""
import sys

from . import get_settings, SettingsError

def main():
    """Display loaded configuration"""
    try:
        settings = get_settings(sys.argv[1] if len(sys.argv) > 1 else None)
    except SettingsError as e:
        print(str(e))
        sys.exit(1)
        
    print("\nSettings Configuration:")
    print("-" * 50)
    for key, value in settings.items():
        print(f"{key}: {value}")

if __name__ == "__main__":
    main()
