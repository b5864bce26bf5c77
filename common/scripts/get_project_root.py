from pathlib import Path

_ROOT_MARKERS = ("pyproject.toml", "alembic.ini")


def get_project_root() -> Path:
    """
    Locate the repository root by walking up from this file until a
    directory holding pyproject.toml or alembic.ini is found.

    Falls back to the current working directory when the package is
    installed somewhere without those markers (site-packages).
    """
    current_path = Path(__file__).resolve().parent

    while current_path != current_path.parent:
        if any((current_path / marker).exists() for marker in _ROOT_MARKERS):
            return current_path
        current_path = current_path.parent

    return Path.cwd()


__all__ = ["get_project_root"]
