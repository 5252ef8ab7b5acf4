import pytest
import sys
from pathlib import Path

# Add root directory to sys.path so we can import sfa_* modules
ROOT_DIR = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT_DIR))

import sfa_runtime


@pytest.fixture(autouse=True)
def clean_runtime(monkeypatch):
    """Every test starts with no sandbox and no SFA_* overrides."""
    for var in ("SFA_LIST_MAX", "SFA_BODY_WINDOW", "SFA_EXCLUDE_DIRS",
                "SFA_DECL_KEYWORDS", "SFA_DB_PATH", "SFA_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(sfa_runtime, "ALLOWED_PATHS", [])


@pytest.fixture
def source_tree(tmp_path):
    """A small project with artifact directories that must be skipped."""
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "Widget.cs").write_text(
        "public class Widget\n{\n    public void Render()\n    {\n        Draw();\n    }\n}\n"
    )
    (tmp_path / "src" / "notes.txt").write_text("render the widget later\n")
    (tmp_path / "README.md").write_text("# Widget\nRender docs\n")
    for artifact in ("bin", "obj", ".git"):
        (tmp_path / artifact).mkdir()
        (tmp_path / artifact / "Widget.cs").write_text("class Widget { }\n")
    return tmp_path


@pytest.fixture
def sfa_root():
    """Return the root directory of the toolkit."""
    return ROOT_DIR
