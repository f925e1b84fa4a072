"""Command-line entry point for the taskbar usage extractor."""
