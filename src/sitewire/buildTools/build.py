from __future__ import annotations

from dataclasses import dataclass
from importlib import resources
from pathlib import Path
import re
import shutil


@dataclass(frozen=True)
class AppBuildOptions:
    """Values filled into the generated config.ini and gunicorn.conf.py."""
    address: str = "0.0.0.0"
    port: int = 8080
    workers: int = 4
    reload: bool = False


_NAME_RE = re.compile(r"^[A-Za-z0-9_]+$")

_ASSETS = "sitewire.assets"

# (asset path below assets/project, placeholders it contains)
_PROJECT_FILES: tuple[tuple[str, bool], ...] = (
    ("wsgi.py", True),
    ("gunicorn.conf.py", True),
    ("config.ini", True),
    ("app/index.py", True),
    ("templates/index.html", False),
)


class AppBuildError(RuntimeError):
    """Raised when project generation fails for any reason."""


def _copy_asset(name: str, dest: Path) -> None:
    """Copy a bundled project file into the destination path."""
    dest.parent.mkdir(parents=True, exist_ok=True)

    src_file = resources.files(_ASSETS).joinpath("project", *name.split("/"))
    if not src_file.is_file():
        raise AppBuildError(f"Bundled asset is missing: project/{name}")
    with src_file.open("rb") as src, dest.open("wb") as dst:
        shutil.copyfileobj(src, dst)


def _replace_many(text: str, repl: dict[str, str]) -> str:
    """Apply multiple literal replacements and ensure no placeholders remain."""
    out = text
    for k, v in repl.items():
        out = out.replace(k, v)

    unresolved = [k for k in repl.keys() if k in out]
    if unresolved:
        raise AppBuildError("Build template placeholder was not resolved.")
    return out


def create_app(
    project_dir: str | Path,
    app_name: str,
    *,
    options: AppBuildOptions | None = None,
) -> Path:
    """
    Generate a sitewire project under:
        <project_dir>/<app_name>/

    The generated directory includes:
        app/index.py, templates/, log/, config.ini, gunicorn.conf.py, wsgi.py

    Args:
        project_dir: Directory the project is created in.
        app_name: Project directory name (must match [A-Za-z0-9_]+).
        options: Values for the generated configuration.

    Returns:
        Absolute path to the generated project directory.

    Raises:
        ValueError: If app_name is invalid.
        FileExistsError: If the target directory already exists.
        AppBuildError: If bundled assets are missing or placeholders cannot be resolved.
    """
    if not _NAME_RE.match(app_name):
        raise ValueError("app_name must match [A-Za-z0-9_]+ (no dots, slashes, or hyphens).")

    options = options or AppBuildOptions()

    project_root = Path(project_dir).expanduser().resolve()
    project_root.mkdir(parents=True, exist_ok=True)

    app_root = project_root / app_name
    if app_root.exists():
        raise FileExistsError(f"Target app already exists: {app_root}")
    app_root.mkdir(parents=True, exist_ok=False)
    (app_root / "log").mkdir()

    replacements = {
        "__app_name__": app_name,
        "__g_address__": options.address,
        "__g_port__": str(options.port),
        "__g_workers__": str(options.workers),
        "__g_reload__": "True" if options.reload else "False",
    }

    for name, has_placeholders in _PROJECT_FILES:
        dest = app_root.joinpath(*name.split("/"))
        _copy_asset(name, dest)
        if not has_placeholders:
            continue
        text = dest.read_text(encoding="utf-8")
        dest.write_text(_replace_many(text, replacements), encoding="utf-8")

    return app_root
