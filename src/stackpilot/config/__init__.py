"""Engine defaults and configuration loading."""
