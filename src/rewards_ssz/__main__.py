import sys

from rewards_ssz.control.cli import main

if __name__ == "__main__":
    sys.exit(main())
