"""Command-line adapter: `multisig --help`."""
