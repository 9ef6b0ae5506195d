"""Create the data directory and apply database migrations."""
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.database import run_migrations


def main() -> None:
    data_dir = Path("data")
    data_dir.mkdir(exist_ok=True)
    run_migrations()
    print("Run analysis database initialised at", data_dir)


if __name__ == "__main__":
    main()
