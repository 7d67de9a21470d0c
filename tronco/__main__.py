import sys

from tronco.app import TroncoApp
from tronco.config import LsOptions


def main():
    """ Entrypoint when is installed via pip """
    prefix = sys.argv[1] if len(sys.argv) > 1 else "."
    app = TroncoApp(LsOptions(prefix=prefix, all=True))
    app.run()

# Development mode
if __name__ == "__main__":
    main()
