from arkade.configure import configure, is_configured

if not is_configured():
    configure()

import platform
import sys


def arkade_entry() -> None:
    supported_platforms = ["Linux", "Darwin"]
    current_platform = platform.system()
    if current_platform not in supported_platforms:
        from arkade.printing import eprint
        eprint(f"arkade has not been tested on '{current_platform}'")

    python_version = sys.version.split()[0]
    if sys.version_info < (3, 12):
        from arkade.printing import eprint
        eprint(f"arkade requires python 3.12+, used version {python_version}")

    from arkade.main import main
    main(sys.argv[1:])


if __name__ == "__main__":
    arkade_entry()
