import sys

from cli import main_cli


def main():
    """Main application entry point"""
    sys.exit(main_cli(sys.argv[1:]))


if __name__ == "__main__":
    main()
