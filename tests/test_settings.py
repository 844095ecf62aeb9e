from __future__ import annotations

import configparser
from pathlib import Path

import pytest

from walthemes.__main__ import EXECUTABLE
from walthemes.__main__ import GENERATOR_CONFIG
from walthemes.__main__ import RELOAD_CMD
from walthemes.__main__ import ConfigError
from walthemes.__main__ import INIFile
from walthemes.__main__ import Settings

SETTINGS = """\
[walthemes]
executable = /usr/local/bin/wallust
config = ~/dotfiles/wallust.toml
dark = /tmp/themes/dark-theme.el
light = /tmp/themes/light-theme.el
mode = light
auto_reload = no
reload_delay = 1.5
reload_cmd = reload-editor ~/bin/load.el

[hooks]
notify = notify-send {theme}
kitty = kitty @ set-colors -a ~/.cache/wallust/colors-kitty.conf
"""


def test_inifile_read(temp_ini):
    ini = INIFile(temp_ini('config', SETTINGS)).read()
    assert ini.config.has_section('walthemes')
    assert ini.config.has_option('hooks', 'notify')


def test_inifile_get(temp_ini):
    ini = INIFile(temp_ini('config', SETTINGS)).read()
    hooks = ini.get('hooks')
    assert hooks is not None
    assert hooks['notify'] == 'notify-send {theme}'
    assert ini.get('nonexistent') is None


def test_inifile_raises_nosectionserr(temp_ini):
    ini = INIFile(temp_ini('config', ''))
    with pytest.raises(configparser.NoSectionError):
        ini.read()


def test_inifile_raises_filenotfounderr():
    with pytest.raises(FileNotFoundError):
        INIFile(Path('/nonexistent/file.ini')).read()


def test_inifile_add_save(tmp_path: Path):
    path = tmp_path / 'config.ini'
    INIFile(path).add('walthemes', Settings().as_section()).save()
    settings = Settings.load(path)
    assert settings == Settings()


def test_settings_load(temp_ini):
    settings = Settings.load(temp_ini('config', SETTINGS))
    assert settings.executable == '/usr/local/bin/wallust'
    assert settings.config == Path('~/dotfiles/wallust.toml').expanduser()
    assert settings.dark == Path('/tmp/themes/dark-theme.el')
    assert settings.light == Path('/tmp/themes/light-theme.el')
    assert settings.mode == 'light'
    assert settings.auto_reload is False
    assert settings.reload_delay == 1.5  # noqa: PLR2004
    assert settings.reload_cmd == f'reload-editor {Path("~/bin/load.el").expanduser().as_posix()}'
    assert set(settings.hooks) == {'notify', 'kitty'}


def test_settings_load_missing_file(tmp_path: Path):
    settings = Settings.load(tmp_path / 'nonexistent.ini')
    assert settings.executable == EXECUTABLE
    assert settings.config == GENERATOR_CONFIG
    assert settings.mode == 'dark'
    assert settings.auto_reload is True
    assert settings.reload_cmd == RELOAD_CMD
    assert settings.hooks == {}
    assert settings.dark.name == 'walthemes-dark-theme.el'
    assert settings.light.name == 'walthemes-light-theme.el'


def test_settings_load_partial(temp_ini):
    settings = Settings.load(temp_ini('config', '[hooks]\nnotify = notify-send done\n'))
    assert settings.executable == EXECUTABLE
    assert settings.hooks == {'notify': 'notify-send done'}


@pytest.mark.parametrize(
    'content',
    [
        '',
        '[walthemes]\nmode = sepia\n',
        '[walthemes]\nauto_reload = maybe\n',
        '[walthemes]\nreload_delay = soon\n',
        'no section header\n',
    ],
)
def test_settings_load_invalid(temp_ini, content: str):
    with pytest.raises(ConfigError, match='invalid settings'):
        Settings.load(temp_ini('config', content))


@pytest.mark.parametrize(
    ('content', 'name'),
    [
        ('[hooks]\nnotify = notify-send "unterminated\n', 'notify'),
        ('[walthemes]\nreload_cmd = emacsclient --eval \'(load-file\n', 'reload_cmd'),
        ('[walthemes]\nexecutable = "wallust\n', 'executable'),
    ],
)
def test_settings_load_unbalanced_quotes(temp_ini, content: str, name: str):
    with pytest.raises(ConfigError, match=rf'{name}: no closing quotation'):
        Settings.load(temp_ini('config', content))
