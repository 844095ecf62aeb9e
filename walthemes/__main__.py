from __future__ import annotations

import argparse
import configparser
import json
import logging
import os
import re
import shlex
import subprocess
import sys
import textwrap
import time
import tomllib
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path
from typing import Callable
from typing import Iterator
from typing import Self

__appname__ = 'walthemes'
__version__ = 'v0.1.0'

logger = logging.getLogger(__name__)

INISection = dict[str, str]
Callback = Callable[[str], None]
Prompt = Callable[[str], str]


# app
APP_ROOT = Path(os.environ.get('XDG_CONFIG_HOME', Path.home() / '.config'))
APP_HOME = APP_ROOT / __appname__.lower()
APP_CONFIG = APP_HOME / 'config.ini'
HELP = textwrap.dedent(
    f"""usage: {__appname__} [-h] [-l] [-s] [-b] [-p THEME] [-r] [--setup] [-d] [-v] [--color COLOR] [theme]

options:
    theme               Theme name to apply (or 'random')
    -l, --list          List available themes
    -s, --select        List themes and prompt for one to apply
    -b, --browse        Browse themes interactively
    -p, --preview       Show the palette of a theme without applying it
    -r, --reload        Reload the generated theme file in the editor
    --setup             Declare the editor templates in the generator config
    -d, --dry-run       Do not make any changes
    -V, --version       Print version and exit
    -v, --verbose       Increase output verbosity
    --color             Enable color [always|never] (default: always)
    -h, --help          Print this help message

locations:
  {APP_CONFIG}"""  # noqa: E501
)

# generator
EXECUTABLE = 'wallust'
GENERATOR_CONFIG = APP_ROOT / 'wallust' / 'wallust.toml'
CATALOG_START = 'Colorschemes'
CATALOG_END = 'Extra'
RANDOM = 'random'
EXCLUDED = ('list',)
ERROR_MARKERS = ('[E]', '[e]', 'Error:', 'error:', 'ERROR:')
TEMPLATES_SECTION = 'templates'
VARIANTS = ('dark', 'light')
RELOAD_DELAY = 0.5
RELOAD_CMD = 'emacsclient --eval \'(load-file "{file}")\''

ANSI_RE = re.compile(r'\x1b\[[0-9;]*m')
ENTRY_RE = re.compile(r'^\s*-\s+([^\s(]+)')
RANDOM_RE = re.compile(r'randomly selected(.*)')
SWATCH_RE = re.compile(r'\x1b\[48;2;(\d{1,3});(\d{1,3});(\d{1,3})m')

# editor theme rendered by the generator, '{theme}' is replaced on install
TEMPLATE = textwrap.dedent(
    """\
    ;;; {theme}-theme.el --- generated by wallust  -*- lexical-binding: t -*-
    (deftheme {theme} "Colors generated by wallust from the current colorscheme.")

    (custom-theme-set-faces
     '{theme}
     '(default ((t (:background "{{background}}" :foreground "{{foreground}}"))))
     '(cursor ((t (:background "{{cursor}}"))))
     '(region ((t (:background "{{color8}}"))))
     '(fringe ((t (:background "{{background}}"))))
     '(mode-line ((t (:background "{{color0}}" :foreground "{{foreground}}"))))
     '(mode-line-inactive ((t (:background "{{background}}" :foreground "{{color8}}"))))
     '(font-lock-comment-face ((t (:foreground "{{color8}}" :slant italic))))
     '(font-lock-keyword-face ((t (:foreground "{{color5}}"))))
     '(font-lock-string-face ((t (:foreground "{{color2}}"))))
     '(font-lock-function-name-face ((t (:foreground "{{color4}}"))))
     '(font-lock-variable-name-face ((t (:foreground "{{color6}}"))))
     '(font-lock-type-face ((t (:foreground "{{color3}}"))))
     '(font-lock-constant-face ((t (:foreground "{{color1}}")))))

    (provide-theme '{theme})
    """
)

# colors
BLUE = '\033[34m'
CYAN = '\033[36m'
GRAY = '\33[37m'
GREEN = '\033[32m'
MAGENTA = '\033[35m'
RED = '\033[31m'
YELLOW = '\033[33m'
END = '\033[0m'
# styles
BOLD = '\033[1m'
ITALIC = '\033[3m'
UNDERLINE = '\033[4m'


class WalthemesError(Exception):
    pass


class ThemeModeError(WalthemesError):
    pass


class ExecutableNotFoundError(WalthemesError):
    pass


class EmptyCatalogError(WalthemesError):
    pass


class ApplyError(WalthemesError):
    pass


class ReloadError(WalthemesError):
    pass


class ConfigError(WalthemesError):
    pass


class BaseError:
    """Represents an error"""

    mesg: str = ''
    occurred: bool = False


@dataclass
class INIFile:
    """
    A dataclass representing an INI file and providing
    methods to read and write its contents.
    """

    path: Path
    _config: configparser.ConfigParser = field(default_factory=configparser.ConfigParser)

    @property
    def filepath(self) -> Path:
        """Returns the path to the INI file as a `Path` object."""
        return Path(self.path)

    @property
    def config(self) -> configparser.ConfigParser:
        """Returns the `ConfigParser` object used to read the INI file."""
        return self._config

    def read(self) -> Self:
        """
        Reads the INI file and populates the config attribute with its data.
        """
        if not self.filepath.exists():
            err_msg = f'INI file path {self.filepath.name!r} not found.'
            raise FileNotFoundError(err_msg)

        self._config.read(self.filepath, encoding='utf-8')
        if not self.config.sections():
            errmsg = f'No sections found in {self.filepath.name!r}.'
            raise configparser.NoSectionError(errmsg)
        return self

    def get(self, section: str) -> INISection | None:
        """Returns the section of the INI file with the given name."""
        if not self.config.has_section(section):
            return None
        return dict(self.config[section])

    def add(self, section_name: str, data: INISection) -> Self:
        """Adds a new section to the config data."""
        self._config.add_section(section_name)
        for key, value in data.items():
            self._config.set(section_name, key, value)
        return self

    def save(self) -> None:
        """Writes the config data back to the INI file."""
        with self.filepath.open(mode='w', encoding='utf-8') as file:
            self._config.write(file)


@dataclass
class Settings:
    """
    Tool settings, read from the `[walthemes]` and `[hooks]` sections of
    the INI file in `APP_HOME`.
    """

    executable: str = EXECUTABLE
    config: Path = GENERATOR_CONFIG
    dark: Path = field(default_factory=lambda: theme_file('dark'))
    light: Path = field(default_factory=lambda: theme_file('light'))
    mode: str = 'dark'
    auto_reload: bool = True
    reload_delay: float = RELOAD_DELAY
    reload_cmd: str = RELOAD_CMD
    hooks: INISection = field(default_factory=dict)

    def as_section(self) -> INISection:
        """Returns the settings as an INISection, used to write defaults."""
        return {
            'executable': self.executable,
            'config': self.config.as_posix(),
            'dark': self.dark.as_posix(),
            'light': self.light.as_posix(),
            'mode': self.mode,
            'auto_reload': str(self.auto_reload).lower(),
            'reload_delay': str(self.reload_delay),
            'reload_cmd': self.reload_cmd.replace('%', '%%'),
        }

    @classmethod
    def load(cls, path: Path) -> Settings:
        """Reads settings from `path`, falling back to defaults if missing."""
        if not path.exists():
            logger.debug(f'settings file {path!s} not found, using defaults')
            return cls()

        try:
            ini = INIFile(path).read()
            return parse_settings(ini.config)
        except (configparser.Error, ValueError, ThemeModeError) as exc:
            err_msg = f'invalid settings in {path.as_posix()!r}: {exc}'
            raise ConfigError(err_msg) from exc


def parse_settings(p: configparser.ConfigParser) -> Settings:
    """Parses the `[walthemes]` and `[hooks]` sections of a `ConfigParser`."""
    section = __appname__
    defaults = Settings()
    if not p.has_section(section):
        p.add_section(section)

    mode = p.get(section, 'mode', fallback=defaults.mode)
    if mode not in VARIANTS:
        err_msg = f'invalid mode {mode!r}'
        raise ThemeModeError(err_msg)

    hooks: INISection = {}
    if p.has_section('hooks'):
        hooks = {name: p.get('hooks', name) for name in p.options('hooks')}

    executable = p.get(section, 'executable', fallback=defaults.executable)
    reload_cmd = p.get(section, 'reload_cmd', fallback=defaults.reload_cmd)
    commands = [('executable', executable), ('reload_cmd', reload_cmd), *hooks.items()]
    for name, command in commands:
        try:
            shlex.split(command)
        except ValueError as exc:
            err_msg = f'{name}: {exc.args[0].lower()} in {command!r}'
            raise ValueError(err_msg) from exc

    return Settings(
        executable=executable,
        config=Files.get_path(p.get(section, 'config', fallback=defaults.config.as_posix())),
        dark=Files.get_path(p.get(section, 'dark', fallback=defaults.dark.as_posix())),
        light=Files.get_path(p.get(section, 'light', fallback=defaults.light.as_posix())),
        mode=mode,
        auto_reload=p.getboolean(section, 'auto_reload', fallback=defaults.auto_reload),
        reload_delay=p.getfloat(section, 'reload_delay', fallback=defaults.reload_delay),
        reload_cmd=Files.expand_homepaths(reload_cmd),
        hooks=hooks,
    )


def theme_file(variant: str) -> Path:
    """Returns the default path of the generated editor theme for `variant`."""
    return Path.home() / '.emacs.d' / 'themes' / f'{template_name(variant)}-theme.el'


def template_name(variant: str) -> str:
    return f'{__appname__}-{variant}'


@dataclass
class Cmd:
    """
    A command dataclass used to wrap commands that can be executed or logged.
    The placeholder '{theme}' is replaced with the applied theme name.
    """

    name: str
    cmd: str

    def run(self, theme: str = '') -> None:
        """
        Run the command with optional logging.

        If SysOps.dry_run is enabled, logs a dry-run message and returns early.
        Otherwise, logs running and executes the command as usual.
        """

        if not self.cmd:
            return
        print(self, end=' ')

        command = self.cmd.replace('{theme}', theme)
        if SysOps.dry_run:
            print(colorize('dry run', ITALIC, CYAN))
            logger.debug(f'dry run for command={command}')
            return

        logger.debug(f'running command={command}')
        if SysOps.call(command) != 0:
            print(colorize('failed', ITALIC, RED))
            return
        print(colorize('executed', ITALIC, GREEN))

    def __str__(self) -> str:
        return f'{colorize("[cmd]", BOLD, MAGENTA)} {self.name}'


@dataclass
class Commander:
    """
    A collection of commands to execute or log.
    """

    cmds: list[Cmd] = field(default_factory=list)

    def register(self, cmd: Cmd) -> None:
        """Register a new command to the collection."""
        self.cmds.append(cmd)

    def has_cmds(self) -> bool:
        """Check if there are any commands in the collection."""
        return len(self.cmds) > 0

    def run(self, theme: str = '') -> None:
        """Execute all registered commands with logging support."""
        for cmd in self.cmds:
            cmd.run(theme)

    @classmethod
    def new(cls, hooks: INISection) -> Commander:
        """Creates a Commander from the `[hooks]` section of the settings."""
        commander = cls()
        for name, command in hooks.items():
            commander.register(Cmd(name, Files.expand_homepaths(command)))
        return commander


class Files:
    """
    A utility class for handling file operations such as reading, writing, and
    manipulating file paths
    """

    @staticmethod
    def readtext(f: Path) -> str:
        """Reads a file and returns its content, or an empty string if missing."""
        if not f.exists():
            logger.debug(f"file '{f}' does not exist.")
            return ''
        return f.read_text(encoding='utf-8')

    @staticmethod
    def savetext(f: Path, text: str) -> None:
        """Writes `text` to a file, creating its parent directory if needed."""
        Files.mkdir(f.parent)
        with f.open(mode='w', encoding='utf-8') as file:
            file.write(text)

    @staticmethod
    def get_path(f: str) -> Path:
        """
        Expands a file path (including '~' for the home directory) and
        returns it as a Path object.
        """
        return Path(f).expanduser()

    @staticmethod
    def expand_homepaths(command: str) -> str:
        """Expands '~' in a command string to the full home directory path."""
        if '~' not in command or not command:
            return command

        cmds = command.split()
        for i, c in enumerate(cmds):
            if not c.startswith('~'):
                continue
            cmds[i] = Path(c).expanduser().as_posix()
        return ' '.join(cmds)

    @staticmethod
    def mkdir(path: Path) -> None:
        """
        Creates a directory at the specified path if it does not already exist.
        """
        if path.is_file():
            err_msg = f'Cannot create directory: {path!s} is a file.'
            raise IsADirectoryError(err_msg)
        if path.exists():
            logger.debug(f'path={path!s} already exists')
            return

        logger.info(f'creating {path=}')
        path.mkdir(parents=True, exist_ok=True)


class SysOps:
    """
    A utility class for system operations such as command execution and
    output capture.
    """

    dry_run: bool = False
    color: bool = False

    @staticmethod
    def output(commands: str) -> str:
        """
        Executes a command and returns its combined stdout and stderr.
        A non-zero exit code is not an error, callers inspect the text.
        """
        logger.debug(f'executing from output: {commands!r}')
        try:
            proc = subprocess.run(  # noqa: S603
                shlex.split(commands),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                check=False,
                shell=False,
            )
        except (FileNotFoundError, ValueError) as exc:
            return f'Error: {commands!r}: {exc}'
        logger.debug(f'exit code={proc.returncode} from {commands!r}')
        return proc.stdout.decode('utf-8', errors='replace')

    @staticmethod
    def call(commands: str) -> int:
        """Executes a shell command and returns its exit code."""
        logger.debug(f'executing from call: {commands!r}')
        try:
            proc = subprocess.run(  # noqa: S603
                shlex.split(commands),
                stderr=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                check=False,
                shell=False,
            )
        except (FileNotFoundError, ValueError) as exc:
            err_msg = f"'{commands}': " + str(exc)
            print(colorize('[err]', BOLD, RED), err_msg)
            return 1
        return proc.returncode

    @staticmethod
    def is_executable(c: str) -> bool:
        """
        Checks if a command is executable by verifying its
        existence in the system's PATH.
        """
        return SysOps.call(f'which {c}') == 0


def strip_ansi(text: str) -> str:
    """
    Removes terminal color sequences (ESC[...m) from `text`, including the
    ones formed by joining the text around a removed sequence.
    """
    while (stripped := ANSI_RE.sub('', text)) != text:
        text = stripped
    return text


def has_error(text: str) -> bool:
    """Checks if the generator output contains any error marker."""
    return any(marker in text for marker in ERROR_MARKERS)


def parse_catalog(text: str) -> list[str]:
    """
    Extracts theme names from the output of the generator's theme listing.

    Names are the dash-prefixed entries found between the `CATALOG_START`
    and `CATALOG_END` headers. The pseudo-theme 'random' is appended when
    the end header is reached. Without a start header the result is empty.
    """
    themes: list[str] = []
    inside = False
    for line in strip_ansi(text).splitlines():
        header = line.lstrip()
        if header.startswith(CATALOG_START):
            inside = True
            continue
        if header.startswith(CATALOG_END):
            if inside and RANDOM not in themes:
                themes.append(RANDOM)
            inside = False
            continue
        if not inside:
            continue

        match = ENTRY_RE.match(line)
        if not match or match.group(1) in EXCLUDED:
            continue
        themes.append(match.group(1))

    logger.debug(f'found {len(themes)} themes')
    return themes


def resolve_random(text: str) -> str | None:
    """Returns the theme name chosen by the generator for 'random'."""
    match = RANDOM_RE.search(text)
    if not match:
        return None
    return match.group(1).strip() or None


def extract_colors(text: str) -> list[str]:
    """Returns the hex colors of every 24-bit background sequence in `text`."""
    colors: list[str] = []
    for match in SWATCH_RE.finditer(text):
        rgb = [int(v) for v in match.groups()]
        if any(v > 255 for v in rgb):  # noqa: PLR2004
            logger.debug(f'skipping invalid color {match.group(0)!r}')
            continue
        colors.append('#{:02x}{:02x}{:02x}'.format(*rgb))
    return colors


@dataclass
class Catalog:
    """The themes offered by the generator, rebuilt on every `load`."""

    executable: str
    themes: list[str] = field(default_factory=list)

    def load(self) -> Self:
        text = SysOps.output(f'{self.executable} theme list')
        self.themes = parse_catalog(text)
        if not self.themes:
            err_msg = f'no themes found in {self.executable!r} output'
            raise EmptyCatalogError(err_msg)
        return self

    def get(self, key: str) -> str | None:
        """Returns a theme by its name or by its 1-based index."""
        key = key.strip()
        if key in self.themes:
            return key
        if not key.isdigit():
            return None
        idx = int(key) - 1
        if 0 <= idx < len(self.themes):
            return self.themes[idx]
        return None

    def __len__(self) -> int:
        return len(self.themes)

    def __iter__(self) -> Iterator[str]:
        return iter(self.themes)


@dataclass
class TemplateConfig:
    """
    The generator config file. Makes sure its `[templates]` section maps a
    dark and a light template to the editor theme files.
    """

    path: Path
    dark: Path
    light: Path
    dry_run: bool = False
    section: str = TEMPLATES_SECTION

    @property
    def templates_dir(self) -> Path:
        return self.path.parent / 'templates'

    def target(self, variant: str) -> Path:
        match variant:
            case 'dark':
                return self.dark
            case 'light':
                return self.light
            case _:
                err_msg = f'invalid mode {variant!r}'
                raise ThemeModeError(err_msg)

    def entry(self, variant: str) -> str:
        name = template_name(variant)
        # a JSON string is a valid TOML basic string
        target = json.dumps(self.target(variant).as_posix(), ensure_ascii=False)
        return f'{name} = {{ template = "{name}.el", target = {target} }}\n'

    def load(self, content: str) -> dict:
        try:
            return tomllib.loads(content)
        except tomllib.TOMLDecodeError as exc:
            err_msg = f'invalid config {self.path.as_posix()!r}: {exc}'
            raise ConfigError(err_msg) from exc

    def header(self, content: str) -> re.Match[str] | None:
        pattern = rf'^[ \t]*\[[ \t]*{re.escape(self.section)}[ \t]*\][ \t]*(#.*)?$'
        return re.search(pattern, content, re.MULTILINE)

    def has_variant(self, content: str, variant: str) -> bool:
        """Checks if any key of the section already declares `variant`."""
        table = self.load(content).get(self.section, {})
        return any(variant in key for key in table)

    def add_section(self, content: str) -> str:
        if content and not content.endswith('\n'):
            content += '\n'
        if content:
            content += '\n'
        return content + f'[{self.section}]\n'

    def insert(self, content: str, variant: str) -> str:
        """Inserts the `variant` entry directly below the section header."""
        match = self.header(content)
        if match is None:
            err_msg = f'section [{self.section}] not found in {self.path.as_posix()!r}'
            raise ConfigError(err_msg)

        idx = match.end()
        head, tail = content[:idx], content[idx:]
        if tail.startswith('\n'):
            head, tail = head + '\n', tail[1:]
        else:
            head += '\n'
        logger.info(f'adding {variant} template to {self.path.name!r}')
        return head + self.entry(variant) + tail

    def reconcile(self) -> bool:
        """
        Adds the section and the missing entries. The file is written only
        when something changed. Returns whether the content changed.
        """
        original = content = Files.readtext(self.path)
        self.load(content)

        if self.header(content) is None:
            content = self.add_section(content)

        for variant in VARIANTS:
            if self.has_variant(content, variant):
                logger.debug(f'{variant} template already declared')
                continue
            content = self.insert(content, variant)

        if content == original:
            logger.debug(f'no changes in {self.path.name!r}')
            return False
        if self.dry_run:
            logger.debug(f'dry run for writing {self.path!s}')
            return True

        Files.savetext(self.path, content)
        return True

    def install_templates(self) -> list[Path]:
        """Writes the template files that are not present yet."""
        written: list[Path] = []
        for variant in VARIANTS:
            name = template_name(variant)
            path = self.templates_dir / f'{name}.el'
            if path.exists():
                logger.debug(f'template {path!s} already exists')
                continue
            if self.dry_run:
                logger.debug(f'dry run for template={path!s}')
                continue
            Files.savetext(path, TEMPLATE.replace('{theme}', name))
            written.append(path)
        return written

    def __str__(self) -> str:
        return f'{colorize("[cfg]", BOLD, GREEN)} {self.path.name}'


@dataclass
class ThemeState:
    """The last theme applied successfully during this process."""

    current: str | None = None

    def update(self, name: str) -> None:
        logger.debug(f'current theme={name!r}')
        self.current = name

    def is_current(self, name: str) -> bool:
        return self.current is not None and self.current == name


@dataclass
class ApplyResult:
    """The outcome of applying a theme."""

    requested: str
    name: str = ''
    output: str = ''
    error: BaseError = field(default_factory=BaseError)
    warning: BaseError = field(default_factory=BaseError)
    reload: BaseError = field(default_factory=BaseError)

    @property
    def ok(self) -> bool:
        return not self.error.occurred


@dataclass
class Reloader:
    """
    Reloads the generated editor theme file for the current mode by running
    the configured reload command.
    """

    dark: Path
    light: Path
    mode: str
    cmd: str

    def get_mode(self, mode: str) -> Path:
        match mode:
            case 'light':
                return self.light
            case 'dark':
                return self.dark
            case _:
                err_msg = f'invalid mode {mode!r}'
                raise ThemeModeError(err_msg)

    @property
    def file(self) -> Path:
        return self.get_mode(self.mode)

    def command(self, path: Path) -> str:
        if '{file}' in self.cmd:
            return self.cmd.replace('{file}', path.as_posix())
        return f'{self.cmd} {shlex.quote(path.as_posix())}'

    def reload(self) -> None:
        path = self.file
        if not path.is_file():
            err_msg = f'theme file {path.as_posix()!r} not found.'
            raise ReloadError(err_msg)
        if not self.cmd:
            logger.info('no reload command configured')
            return

        print(self, path.name, end=' ')
        if SysOps.dry_run:
            print(colorize('dry run', ITALIC, CYAN))
            logger.debug(f'dry run for reloading file={path!s}')
            return

        code = SysOps.call(self.command(path))
        if code != 0:
            print(colorize('failed', ITALIC, RED))
            err_msg = f'reload command exited with code {code}'
            raise ReloadError(err_msg)
        print(colorize('reloaded', ITALIC, BLUE))

    @classmethod
    def new(cls, settings: Settings) -> Reloader:
        return cls(
            dark=settings.dark,
            light=settings.light,
            mode=settings.mode,
            cmd=settings.reload_cmd,
        )

    def __str__(self) -> str:
        return colorize('[reload]', BOLD, BLUE)


@dataclass
class Applier:
    """
    Applies themes through the generator and records the applied theme
    in the injected `ThemeState`.
    """

    executable: str
    state: ThemeState
    reloader: Reloader | None = None
    auto_reload: bool = False
    delay: float = RELOAD_DELAY
    callbacks: list[Callback] = field(default_factory=list)

    def register(self, callback: Callback) -> None:
        """Registers a callable run with the theme name after each apply."""
        self.callbacks.append(callback)

    def command(self, name: str, *flags: str) -> str:
        return ' '.join([self.executable, 'theme', shlex.quote(name), *flags])

    def apply(self, name: str) -> ApplyResult:
        result = ApplyResult(requested=name)
        if SysOps.dry_run:
            logger.debug(f'dry run for command={self.command(name)}')
            result.name = name
            return result

        result.output = strip_ansi(SysOps.output(self.command(name)))
        if has_error(result.output):
            result.error.mesg = result.output
            result.error.occurred = True
            logger.debug(f'theme={name!r} failed')
            return result

        result.name = name
        if name == RANDOM:
            selected = resolve_random(result.output)
            if selected is None:
                result.warning.mesg = 'could not resolve the name of the random theme.'
                result.warning.occurred = True
                logger.warning(result.warning.mesg)
            else:
                result.name = selected

        self.state.update(result.name)

        if self.auto_reload and self.reloader is not None:
            time.sleep(self.delay)
            try:
                self.reloader.reload()
            except ReloadError as err:
                result.reload.mesg = str(err)
                result.reload.occurred = True
                logger.debug(f'reload failed: {err}')

        for callback in self.callbacks:
            callback(result.name)

        return result

    def preview(self, name: str) -> list[str]:
        """Returns the palette of a theme without applying it."""
        text = SysOps.output(self.command(name, '--preview'))
        if has_error(strip_ansi(text)):
            raise ApplyError(strip_ansi(text).strip())
        return extract_colors(text)

    @classmethod
    def new(cls, settings: Settings, state: ThemeState) -> Applier:
        applier = cls(
            executable=settings.executable,
            state=state,
            reloader=Reloader.new(settings),
            auto_reload=settings.auto_reload,
            delay=settings.reload_delay,
        )
        commander = Commander.new(settings.hooks)
        if commander.has_cmds():
            applier.register(commander.run)
        return applier


@dataclass
class Browser:
    """
    Interactive theme list. Input is read line by line:
    a number or name applies the theme, 'p <theme>' previews it,
    'r' refreshes the list and 'q' quits.
    """

    catalog: Catalog
    applier: Applier
    prompt: Prompt = input

    @property
    def state(self) -> ThemeState:
        return self.applier.state

    def render(self) -> None:
        print_catalog(self.catalog, self.state)

    def handle(self, line: str) -> bool:
        """Handles one input line, returns False when the session ends."""
        cmd, _, arg = line.strip().partition(' ')
        match cmd:
            case '':
                return True
            case 'q' | 'quit':
                return False
            case 'r' | 'refresh':
                themes = list(self.catalog.themes)
                try:
                    self.catalog.load()
                except EmptyCatalogError as err:
                    print(colorize('[err]', BOLD, RED), err)
                    self.catalog.themes = themes
                    return True
                self.render()
            case 'p' | 'preview':
                theme = self.catalog.get(arg)
                if theme is None:
                    logme(f'theme={arg!r} not found')
                    return True
                try:
                    print_swatches(theme, self.applier.preview(theme))
                except ApplyError as err:
                    print(colorize('[err]', BOLD, RED), err)
            case _:
                theme = self.catalog.get(line)
                if theme is None:
                    logme(f'theme={line.strip()!r} not found')
                    return True
                report(self.applier.apply(theme))
                self.render()
        return True

    def run(self) -> int:
        self.render()
        while True:
            try:
                line = self.prompt('> ')
            except (EOFError, KeyboardInterrupt):
                print()
                return 0
            if not self.handle(line):
                return 0


def version() -> None:
    print(f'{__appname__} {__version__}')


def logme(s: str) -> None:
    print(f'{__appname__} {__version__}: {s}')


def colorize(text: str, *styles: str) -> str:
    """Returns the given text with the specified styles applied."""
    # https://no-color.org/
    if os.getenv('NO_COLOR'):
        return text
    if not styles or not SysOps.color:
        return text
    return ''.join(styles) + text + END


def background(color: str) -> str:
    """Returns the 24-bit background sequence for a '#rrggbb' color."""
    r, g, b = (int(color[i : i + 2], 16) for i in (1, 3, 5))
    return f'\033[48;2;{r};{g};{b}m'


def print_catalog(catalog: Catalog, state: ThemeState | None = None) -> None:
    """Prints the themes, marking the one currently applied if `state` is given."""
    width = len(str(len(catalog)))
    for idx, name in enumerate(catalog, start=1):
        n = colorize(f'{idx:>{width}}', GRAY)
        if state is not None and state.is_current(name):
            print(f'{n} {colorize(name, BOLD, GREEN)} {colorize("(current)", ITALIC, GRAY)}')
            continue
        print(f'{n} {name}')


def print_swatches(theme: str, colors: list[str]) -> None:
    if not colors:
        logme(f'no colors found for theme={theme!r}')
        return
    print(colorize('[theme]', BOLD, BLUE), theme)
    for color in colors:
        print(colorize('    ', background(color)), color)


def report(result: ApplyResult) -> int:
    """Prints the outcome of an apply, returns an exit code."""
    t = colorize('[theme]', BOLD, BLUE)
    if not result.ok:
        print(t, result.requested, colorize('err', ITALIC, RED))
        print(textwrap.indent(result.error.mesg.strip(), '    '))
        return 1
    if SysOps.dry_run:
        print(t, result.name, colorize('dry run', ITALIC, CYAN))
        return 0

    print(t, result.name, colorize('applied', ITALIC, BLUE))
    if result.warning.occurred:
        print(colorize('[warn]', BOLD, YELLOW), result.warning.mesg)
    if result.reload.occurred:
        print(colorize('[err]', BOLD, RED), result.reload.mesg)
    return 0


def ensure_executable(name: str) -> None:
    if not SysOps.is_executable(name):
        err_msg = f'executable {name!r} not found in PATH'
        raise ExecutableNotFoundError(err_msg)


def select_theme(catalog: Catalog, applier: Applier, prompt: Prompt = input) -> int:
    """Lists the themes, asks for one and applies it."""
    print_catalog(catalog)
    try:
        answer = prompt('theme: ')
    except (EOFError, KeyboardInterrupt):
        print()
        return 1

    theme = catalog.get(answer)
    if theme is None:
        logme(f'theme={answer.strip()!r} not found')
        return 1
    return report(applier.apply(theme))


def run_setup(settings: Settings) -> int:
    """
    Writes the default settings file, the template files and declares the
    templates in the generator config.
    """
    if not APP_CONFIG.exists() and not SysOps.dry_run:
        Files.mkdir(APP_HOME)
        ini = INIFile(APP_CONFIG)
        ini.add(__appname__, settings.as_section())
        ini.save()
        logme(f'settings written to {APP_CONFIG!s}')

    cfg = TemplateConfig(
        path=settings.config,
        dark=settings.dark,
        light=settings.light,
        dry_run=SysOps.dry_run,
    )
    for path in cfg.install_templates():
        print(colorize('[tpl]', BOLD, GREEN), path.name, colorize('created', ITALIC, BLUE))

    if not cfg.reconcile():
        print(cfg, colorize('no changes', ITALIC, YELLOW))
    elif cfg.dry_run:
        print(cfg, colorize('dry run', ITALIC, CYAN))
    else:
        print(cfg, colorize('updated', ITALIC, BLUE))
    return 0


def parse_and_exit(args: argparse.Namespace) -> None:
    """Handles the arguments that exit before any work is done."""
    if args.help:
        print(HELP)
        sys.exit(0)
    if args.version:
        version()
        sys.exit(0)


def dispatch(args: argparse.Namespace, settings: Settings) -> int:
    """Runs the command selected by the arguments."""
    if args.reload:
        Reloader.new(settings).reload()
        return 0

    ensure_executable(settings.executable)
    if args.setup:
        return run_setup(settings)

    state = ThemeState()
    applier = Applier.new(settings, state)
    if args.preview:
        print_swatches(args.preview, applier.preview(args.preview))
        return 0
    if args.theme:
        return report(applier.apply(args.theme))

    if not (args.list or args.select or args.browse):
        print(HELP)
        return 0

    catalog = Catalog(settings.executable).load()
    if args.browse:
        return Browser(catalog, applier).run()
    if args.select:
        return select_theme(catalog, applier)

    version()
    print('\nThemes found:')
    print_catalog(catalog)
    return 0


class Setup:
    """
    A utility class for initial setup tasks such as argument parsing and
    logging configuration.
    """

    @staticmethod
    def init(argv: list[str] | None = None) -> argparse.Namespace:
        """Initializes the application setup."""
        args = Setup.args(argv)
        Setup.logging(args.verbose)
        # globals
        SysOps.dry_run = args.dry_run
        SysOps.color = args.color == 'always'

        logging.debug(vars(args))
        parse_and_exit(args)
        return args

    @staticmethod
    def logging(verbose: int) -> None:
        """
        Configures the logging format and level based on the debug flag.
        """
        logging_format = '[{levelname:^7}] {name:<18}: {message} (line:{lineno})'
        levels = [logging.ERROR, logging.WARNING, logging.INFO, logging.DEBUG]
        level = levels[min(verbose, len(levels) - 1)]
        logging.basicConfig(
            level=level,
            format=logging_format,
            style='{',
            handlers=[logging.StreamHandler()],
        )

    @staticmethod
    def args(argv: list[str] | None = None) -> argparse.Namespace:
        """
        Parses and returns command-line arguments.
        """
        parser = argparse.ArgumentParser(
            formatter_class=argparse.RawTextHelpFormatter,
            add_help=False,
        )
        parser.add_argument('theme', nargs='?')
        parser.add_argument('-l', '--list', action='store_true')
        parser.add_argument('-s', '--select', action='store_true')
        parser.add_argument('-b', '--browse', action='store_true')
        parser.add_argument('-p', '--preview', type=str)
        parser.add_argument('-r', '--reload', action='store_true')
        parser.add_argument('--setup', action='store_true')
        parser.add_argument('--color', type=str, choices=['always', 'never'], default='always')
        parser.add_argument('-d', '--dry-run', action='store_true')
        parser.add_argument('-V', '--version', action='store_true')
        parser.add_argument('-h', '--help', action='store_true')
        parser.add_argument('-v', '--verbose', action='count', default=0)
        return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = Setup.init(argv)
    try:
        settings = Settings.load(APP_CONFIG)
        return dispatch(args, settings)
    except WalthemesError as err:
        print(colorize('[err]', BOLD, RED), err)
        return 1


if __name__ == '__main__':
    sys.exit(main())
