"""Allow ``python -m gitguard``"""

from gitguard.cli import main

if __name__ == '__main__':
    main()
