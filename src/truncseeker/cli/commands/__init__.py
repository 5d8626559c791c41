"""TruncSeeker CLI subcommands."""
