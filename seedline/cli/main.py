"""
Seedline CLI - Command-line interface for scenario execution.

    seedline list
    seedline run incident-response --tenant org-1 --connection slack=ca_123
    seedline cleanup <execution-id> --tenant org-1 --connection slack=ca_123

This creates the 'seedline' command via entry point in pyproject.toml.
"""


def main():
    """Main entry point for the seedline CLI."""
    from seedline.cli.app import cli

    cli()


if __name__ == "__main__":
    main()
