"""Command-line tools for inspecting VPA companions."""
