"""Allow ``python -m DevCenterManager``."""

from DevCenterManager.cli_main import run

if __name__ == "__main__":
    run()
