"""Command-line, headless and rendering front ends for parley."""
