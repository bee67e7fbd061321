"""
Entry point for 'python -m gms'.
"""

from gms.cli.main import cli

if __name__ == "__main__":
    cli(prog_name="python -m gms")
