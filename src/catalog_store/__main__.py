"""Entry point for running catalog_store as a module."""

from catalog_store.server import cli_entry

if __name__ == "__main__":
    cli_entry()
