# Command-line entry points.
