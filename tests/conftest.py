from __future__ import annotations

from typing import TYPE_CHECKING
from typing import Callable
from typing import NamedTuple

import pytest

from walthemes.__main__ import Applier
from walthemes.__main__ import Catalog
from walthemes.__main__ import Reloader
from walthemes.__main__ import SysOps
from walthemes.__main__ import TemplateConfig
from walthemes.__main__ import ThemeState

if TYPE_CHECKING:
    from pathlib import Path


class ConfigForTest(NamedTuple):
    name: str
    executable: str
    themes: list[str]
    reload_cmd: str


CONFIG = ConfigForTest(
    name='gruvbox-dark',
    executable='wallust',
    themes=['3024', 'base16-default', 'gruvbox-dark', 'gruvbox-light', 'nord', 'random'],
    reload_cmd='reload-editor',
)
THEME_NAME = 'settings.ini'

# captured from `wallust theme list`
LIST_OUTPUT = """\
\x1b[1;32mColorschemes\x1b[0m:
  - \x1b[36m3024\x1b[0m
  - \x1b[36mbase16-default\x1b[0m (base16)
  - \x1b[36mgruvbox-dark\x1b[0m
  - \x1b[36mgruvbox-light\x1b[0m
  - \x1b[36mnord\x1b[0m
\x1b[1;32mExtra\x1b[0m:
  - random (randomly selects a theme)
  - list (list themes)
"""

PREVIEW_OUTPUT = (
    '\x1b[1mnord\x1b[0m\n'
    '\x1b[48;2;46;52;64m   \x1b[0m'
    '\x1b[48;2;191;97;106m   \x1b[0m'
    '\x1b[48;2;163;190;140m   \x1b[0m'
    '\x1b[48;2;236;239;244m   \x1b[0m\n'
)


@pytest.fixture(autouse=True)
def reset_sysops():
    SysOps.dry_run = False
    SysOps.color = False
    yield
    SysOps.dry_run = False
    SysOps.color = False


@pytest.fixture
def temp_file(tmp_path):
    def create_file(filename, content):
        path = tmp_path / filename
        path.write_text(content)
        return path

    return create_file


@pytest.fixture
def temp_empty_file(tmp_path):
    def create_file(filename):
        return tmp_path / filename

    return create_file


@pytest.fixture
def temp_ini(tmp_path):
    def create_ini(filename, content) -> Path:
        path = tmp_path / f'{filename}.ini'
        path.write_text(content)
        return path

    return create_ini


@pytest.fixture
def theme_files(tmp_path: Path) -> dict[str, Path]:
    d = tmp_path / 'themes'
    d.mkdir()
    return {
        'dark': d / 'walthemes-dark-theme.el',
        'light': d / 'walthemes-light-theme.el',
    }


@pytest.fixture
def template_config(tmp_path: Path, theme_files: dict[str, Path]) -> TemplateConfig:
    return TemplateConfig(
        path=tmp_path / 'wallust' / 'wallust.toml',
        dark=theme_files['dark'],
        light=theme_files['light'],
    )


@pytest.fixture
def reloader(theme_files: dict[str, Path]) -> Reloader:
    return Reloader(
        dark=theme_files['dark'],
        light=theme_files['light'],
        mode='dark',
        cmd=CONFIG.reload_cmd,
    )


@pytest.fixture
def state() -> ThemeState:
    return ThemeState()


@pytest.fixture
def applier(state: ThemeState, reloader: Reloader) -> Applier:
    return Applier(
        executable=CONFIG.executable,
        state=state,
        reloader=reloader,
        auto_reload=False,
        delay=0,
    )


@pytest.fixture
def catalog() -> Catalog:
    return Catalog(CONFIG.executable, themes=list(CONFIG.themes))


@pytest.fixture
def scripted() -> Callable[..., Callable[[str], str]]:
    """Returns a prompt replacement answering with the given lines."""

    def create_prompt(*lines: str) -> Callable[[str], str]:
        answers = iter(lines)

        def prompt(_: str) -> str:
            try:
                return next(answers)
            except StopIteration:
                raise EOFError from None

        return prompt

    return create_prompt
