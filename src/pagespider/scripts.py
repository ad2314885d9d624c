"""
Browser setup helper.

Downloads the browser binaries Playwright needs before the first crawl.
"""
import subprocess
import sys


def install_browsers(engine: str = "chromium") -> int:
    """
    Run `playwright install <engine>` with the current interpreter.

    Exposed as the `pagespider-install-browsers` console script.

    Returns:
        Process exit code
    """
    print(f"Running 'playwright install {engine}'...")
    try:
        result = subprocess.run(
            [sys.executable, "-m", "playwright", "install", engine],
            check=True,
            capture_output=True,
            text=True
        )
        if result.stdout:
            print(result.stdout)
        print(f"{engine} browser installed successfully.")
        return 0
    except subprocess.CalledProcessError as e:
        print(f"Error installing {engine} for Playwright: {e}", file=sys.stderr)
        if e.stderr:
            print(e.stderr, file=sys.stderr)
        print(
            "Please run the following command manually:\n"
            f"  python -m playwright install {engine}",
            file=sys.stderr
        )
        return e.returncode or 1
    except FileNotFoundError as e:
        print(f"Error: Could not find Python executable: {e}", file=sys.stderr)
        return 1


def main() -> int:
    engine = sys.argv[1] if len(sys.argv) > 1 else "chromium"
    return install_browsers(engine)


if __name__ == "__main__":
    sys.exit(main())
