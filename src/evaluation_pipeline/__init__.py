"""Command-line pipeline that writes evaluation export artifacts."""
