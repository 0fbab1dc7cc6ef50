"""Main entry point for the template compiler CLI."""
from .cli import app

if __name__ == "__main__":
    app()
