"""PlatformIO integration for compiled sketches."""
