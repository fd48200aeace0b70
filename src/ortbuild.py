#!/usr/bin/env python3
"""ortbuild.py - builds the gtcrn ladspa plugin against onnxruntime

features:

- Single script which prepares prerequisites and drives `cargo build`
- Three linking strategies for the onnxruntime dependency:
    dynamic: link against the system installed libonnxruntime.so
    static:  bundle the prebuilt runtime downloaded by the build
    minimal: statically link a size-reduced runtime from the docker build
- Provisions a python venv (onnxruntime + onnx) for model conversion
- Validates and reports the resulting plugin binary

class structure:

Project
BuildEnvironment
ShellCmd
    InterpreterEnvironment
    EnvironmentProvisioner
        UvProvisioner
        VenvProvisioner
    ArchiveUnifier
    BuildInvoker
ArtifactValidator
StrategyDispatcher

"""

import argparse
import datetime
import logging
import os
import platform
import shlex
import shutil
import subprocess
import sys
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Mapping, Optional, Sequence, Union

__version__ = "0.1.0"

# ----------------------------------------------------------------------------
# type aliases

Pathlike = Union[str, Path]


# ----------------------------------------------------------------------------
# env helpers


def getenv(key: str, default: bool = False) -> bool:
    """convert '0','1' env values to bool {True, False}"""
    return bool(int(os.getenv(key, default)))


# ----------------------------------------------------------------------------
# constants

PLATFORM = platform.system()
PY_VER_MINOR = sys.version_info.minor

VENV_DIRNAME = ".venv"
REQUIRED_PACKAGES = ("onnxruntime", "onnx")
MINIMAL_LIB_DIR = Path("onnxruntime-minimal") / "lib"
UNIFIED_ARCHIVE = "libonnxruntime.a"
ARCHIVE_PATTERNS = ("libonnxruntime_*.a", "libonnx.a", "libonnx_proto.a")
MRI_SCRIPT = "lib_script.mri"
ARTIFACT = Path("target") / "release" / "libgtcrn_ladspa_ort.so"
PREREQUISITE_SCRIPT = "./build-minimal-docker.sh"

# environment variables handed to the build command
JOBS_VAR = "CARGO_BUILD_JOBS"
ORT_STRATEGY_VAR = "ORT_STRATEGY"
ORT_LIB_LOCATION_VAR = "ORT_LIB_LOCATION"

# ----------------------------------------------------------------------------
# envar options

DEBUG = getenv("DEBUG", default=True)
COLOR = getenv("COLOR", default=True)

# ----------------------------------------------------------------------------
# logging config


class CustomFormatter(logging.Formatter):
    """custom logging formatting class"""

    white = "\x1b[97;20m"
    grey = "\x1b[38;20m"
    green = "\x1b[32;20m"
    yellow = "\x1b[33;20m"
    red = "\x1b[31;20m"
    bold_red = "\x1b[31;1m"
    reset = "\x1b[0m"
    fmt = "%(delta)s - %(levelname)s - %(name)s.%(funcName)s - %(message)s"
    cfmt = (
        f"{white}%(delta)s{reset} - "
        f"{{}}%(levelname)s{{}} - "
        f"{white}%(name)s.%(funcName)s{reset} - "
        f"{grey}%(message)s{reset}"
    )

    FORMATS = {
        logging.DEBUG: cfmt.format(grey, reset),
        logging.INFO: cfmt.format(green, reset),
        logging.WARNING: cfmt.format(yellow, reset),
        logging.ERROR: cfmt.format(red, reset),
        logging.CRITICAL: cfmt.format(bold_red, reset),
    }

    def __init__(self, use_color: bool = COLOR) -> None:
        super().__init__()
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        """custom logger formatting method"""
        if not self.use_color:
            log_fmt: str = self.fmt
        else:
            log_fmt = self.FORMATS.get(record.levelno, self.fmt)
        if PY_VER_MINOR > 10:
            duration = datetime.datetime.fromtimestamp(
                record.relativeCreated / 1000, datetime.UTC
            )
        else:
            duration = datetime.datetime.fromtimestamp(record.relativeCreated / 1000)
        record.delta = duration.strftime("%H:%M:%S")
        formatter = logging.Formatter(log_fmt)
        return formatter.format(record)


strm_handler = logging.StreamHandler()
strm_handler.setFormatter(CustomFormatter())
logging.basicConfig(
    level=logging.DEBUG if DEBUG else logging.INFO,
    handlers=[strm_handler],
)


# ----------------------------------------------------------------------------
# custom exceptions


class BuildError(Exception):
    """Base exception for build errors"""

    pass


class CommandError(BuildError):
    """Exception for command execution errors"""

    pass


class ProvisioningError(BuildError):
    """No usable environment tool, or package installation failed"""

    pass


class MissingPrerequisiteError(BuildError):
    """Input produced by an external prerequisite build is absent"""

    pass


class ArchiveToolError(BuildError):
    """The archiver exited non-zero"""

    pass


class BuildCommandError(BuildError):
    """The external build command exited non-zero"""

    pass


class ArtifactMissingError(BuildError):
    """The expected build artifact was not produced"""

    pass


# ----------------------------------------------------------------------------
# strategies


class BuildStrategy(Enum):
    """Closed set of states selected from the commandline token"""

    DYNAMIC = "dynamic"
    STATIC = "static"
    MINIMAL = "minimal"
    HELP = "help"
    INVALID = "invalid"

    @property
    def is_build(self) -> bool:
        """True for the three linking strategies"""
        return self in BUILD_STRATEGIES


BUILD_STRATEGIES = (BuildStrategy.DYNAMIC, BuildStrategy.STATIC, BuildStrategy.MINIMAL)

STRATEGY_TOKENS = {
    "dynamic": BuildStrategy.DYNAMIC,
    "static": BuildStrategy.STATIC,
    "minimal": BuildStrategy.MINIMAL,
    "-h": BuildStrategy.HELP,
    "--help": BuildStrategy.HELP,
    "help": BuildStrategy.HELP,
}

# cargo feature enabled for each strategy (always with --no-default-features)
FEATURES = {
    BuildStrategy.DYNAMIC: "dynamic",
    BuildStrategy.STATIC: "download",
    BuildStrategy.MINIMAL: "static",
}

# only these strategies treat a missing artifact as a failure
STRICT_STRATEGIES = (BuildStrategy.MINIMAL,)


def parse_strategy(token: Optional[str]) -> BuildStrategy:
    """map a commandline token to a BuildStrategy (empty -> dynamic)"""
    if not token:
        return BuildStrategy.DYNAMIC
    return STRATEGY_TOKENS.get(token, BuildStrategy.INVALID)


def usage(prog: str = "ortbuild") -> str:
    """return the usage text"""
    return "\n".join(
        [
            f"Usage: {prog} [dynamic|static|minimal] [-j N] [-n] [-r DIR]",
            "",
            "Options:",
            "  dynamic  - Use system installed ONNX Runtime (libonnxruntime.so).",
            "             Fast build, requires 'onnxruntime' package on the system.",
            "",
            "  static   - Use ONNX Runtime downloaded from Microsoft (Bundled).",
            "             Downloads the 'Full' runtime (~50MB) and bundles it.",
            "             Note: This is 'static' in the sense of 'bundled dependencies',",
            "             but technically links dynamically to the bundled .so file.",
            "",
            "  minimal  - Use Minimal ONNX Runtime built via Docker (Statically Linked).",
            f"             Requires running {PREREQUISITE_SCRIPT} first.",
            "             Produces a single, small, dependency-free .so plugin.",
            "",
            "  -j, --jobs N     # of build jobs (default: processor count)",
            "  -n, --dry-run    show build plan without building",
            "  -r, --root DIR   workspace root (default: current directory)",
            "  -h, --help       show this message",
            "",
            "Default: dynamic",
        ]
    )


# ----------------------------------------------------------------------------
# utility classes


class ShellCmd:
    """Runs external commands and handles files."""

    log: logging.Logger

    def cmd(
        self,
        shellcmd: Union[str, Sequence[str]],
        cwd: Pathlike = ".",
        env: Optional[Mapping[str, str]] = None,
        stdin: Optional[Pathlike] = None,
    ) -> None:
        """Run command within working directory

        Args:
            shellcmd: Command as string (will be split safely) or list of args
            cwd: Working directory for command execution
            env: Complete environment for the child process (inherits if None)
            stdin: Optional file fed to the command's standard input

        Raises:
            CommandError: If command execution fails
        """
        args = shlex.split(shellcmd) if isinstance(shellcmd, str) else list(shellcmd)
        self.log.info(" ".join(str(a) for a in args))
        kwargs: dict = {"cwd": str(cwd)}
        if env is not None:
            kwargs["env"] = dict(env)
        try:
            if stdin is None:
                subprocess.check_call(args, **kwargs)
            else:
                with open(stdin, "rb") as f:
                    subprocess.check_call(args, stdin=f, **kwargs)
        except subprocess.CalledProcessError as e:
            self.log.critical("Command failed: %s", e)
            raise CommandError(f"Command failed: {shellcmd}") from e
        except OSError as e:
            self.log.critical("Command could not be started: %s", e)
            raise CommandError(f"Command could not be started: {shellcmd}") from e

    def probe(self, args: Sequence[str]) -> bool:
        """return True if command runs and exits with status 0"""
        try:
            result = subprocess.run(
                [str(a) for a in args],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError:
            return False
        return result.returncode == 0

    def which(self, *names: str) -> Optional[str]:
        """return path of first executable found on PATH"""
        for name in names:
            path = shutil.which(name)
            if path:
                return path
        return None

    def fail(self, msg: str, *args: str) -> str:
        """Raise BuildError with formatted message

        Raises:
            BuildError: Always raised with formatted message
        """
        formatted_msg = msg % args if args else msg
        self.log.critical(formatted_msg)
        raise BuildError(formatted_msg)

    def remove(self, path: Pathlike, silent: bool = False) -> None:
        """Remove file"""
        path = Path(path)
        if not silent:
            self.log.debug("Removing file: %s", path)
        try:
            path.unlink()
        except FileNotFoundError:
            if not silent:
                self.log.debug("File not found: %s", path)


def format_size(size_bytes: int) -> str:
    """Format size in human-readable units"""
    size: float = float(size_bytes)
    for unit in ["B", "KB", "MB", "GB"]:
        if size < 1024:
            return f"{size:,.1f} {unit}"
        size /= 1024
    return f"{size:,.1f} TB"


# ----------------------------------------------------------------------------
# main classes


class Project:
    """Utility class to hold workspace directory structure"""

    def __init__(self, root: Optional[Pathlike] = None) -> None:
        self.root = Path(root) if root else Path.cwd()
        self.venv = self.root / VENV_DIRNAME
        self.minimal_lib = self.root / MINIMAL_LIB_DIR
        self.artifact = self.root / ARTIFACT


@dataclass(frozen=True)
class BuildEnvironment:
    """Environment variables scoped to a single build invocation"""

    jobs: int
    ort_strategy: Optional[str] = None
    ort_lib_location: Optional[Path] = None

    @classmethod
    def for_strategy(
        cls,
        strategy: BuildStrategy,
        lib_dir: Optional[Pathlike] = None,
        jobs: Optional[int] = None,
    ) -> "BuildEnvironment":
        """create the environment a strategy needs"""
        jobs = jobs or os.cpu_count() or 1
        if strategy is BuildStrategy.MINIMAL:
            if lib_dir is None:
                raise BuildError("minimal strategy requires a library directory")
            return cls(
                jobs=jobs,
                ort_strategy="system",
                ort_lib_location=Path(lib_dir).resolve(),
            )
        return cls(jobs=jobs)

    def as_dict(self) -> dict[str, str]:
        """variables set by this environment"""
        env = {JOBS_VAR: str(self.jobs)}
        if self.ort_strategy:
            env[ORT_STRATEGY_VAR] = self.ort_strategy
        if self.ort_lib_location:
            env[ORT_LIB_LOCATION_VAR] = str(self.ort_lib_location)
        return env

    def merged(self, base: Mapping[str, str]) -> dict[str, str]:
        """return a new mapping: base without linkage hints, plus this env"""
        env = {
            k: v
            for k, v in base.items()
            if k not in (ORT_STRATEGY_VAR, ORT_LIB_LOCATION_VAR)
        }
        env.update(self.as_dict())
        return env


class InterpreterEnvironment(ShellCmd):
    """Isolated python environment used for model conversion"""

    def __init__(
        self, path: Pathlike, packages: Sequence[str] = REQUIRED_PACKAGES
    ) -> None:
        self.path = Path(path)
        self.packages = tuple(packages)
        self.log = logging.getLogger(self.__class__.__name__)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} '{self.path}'>"

    @property
    def bin_dir(self) -> Path:
        """scripts folder of the environment"""
        if PLATFORM == "Windows":
            return self.path / "Scripts"
        return self.path / "bin"

    @property
    def python(self) -> Path:
        """interpreter path"""
        if PLATFORM == "Windows":
            return self.bin_dir / "python.exe"
        return self.bin_dir / "python"

    @property
    def pip(self) -> Path:
        """pip path"""
        if PLATFORM == "Windows":
            return self.bin_dir / "pip.exe"
        return self.bin_dir / "pip"

    def is_ready(self) -> bool:
        """check if interpreter exists and all packages import"""
        if not self.python.is_file():
            return False
        imports = "; ".join(f"import {pkg}" for pkg in self.packages)
        return self.probe([str(self.python), "-c", imports])

    def ensure_ready(
        self, provisioners: Optional[Sequence["EnvironmentProvisioner"]] = None
    ) -> "InterpreterEnvironment":
        """create environment and install packages unless already ready

        Provisioners are tried in order; the first available one is used.

        Raises:
            ProvisioningError: no provisioner available or installation failed
        """
        if self.is_ready():
            self.log.info("Python venv already configured: %s", self.path)
            return self

        self.log.info("Setting up Python virtual environment for model conversion...")
        if provisioners is None:
            provisioners = [UvProvisioner(), VenvProvisioner()]
        for provisioner in provisioners:
            if provisioner.is_available():
                provisioner.provision(self)
                self.log.info("Python venv setup complete")
                return self
            self.log.debug("%s not available", provisioner.name)
        raise ProvisioningError(
            "No Python environment tool found (tried: %s)"
            % ", ".join(p.name for p in provisioners)
        )


class EnvironmentProvisioner(ShellCmd):
    """Abstract tool that creates an environment and installs packages"""

    name: str

    def __init__(self) -> None:
        self.log = logging.getLogger(self.__class__.__name__)

    def is_available(self) -> bool:
        """check if provisioning tool can be found"""
        raise NotImplementedError

    def create(self, env: InterpreterEnvironment) -> None:
        """create the environment directory"""
        raise NotImplementedError

    def install(self, env: InterpreterEnvironment) -> None:
        """install the environment's packages"""
        raise NotImplementedError

    def provision(self, env: InterpreterEnvironment) -> None:
        """create environment if absent, then install packages"""
        self.log.info("Using %s for Python environment management...", self.name)
        try:
            if not env.path.is_dir():
                self.create(env)
            self.install(env)
        except CommandError as e:
            raise ProvisioningError(
                f"{self.name} failed to provision {env.path}: {e}"
            ) from e


class UvProvisioner(EnvironmentProvisioner):
    """Provisions with the uv environment manager"""

    name = "uv"

    def is_available(self) -> bool:
        return self.which("uv") is not None

    def create(self, env: InterpreterEnvironment) -> None:
        self.cmd(["uv", "venv", str(env.path)])

    def install(self, env: InterpreterEnvironment) -> None:
        self.cmd(["uv", "pip", "install", "--python", str(env.python), *env.packages])


class VenvProvisioner(EnvironmentProvisioner):
    """Provisions with `python -m venv` and pip"""

    name = "venv"
    interpreters = ("python3", "python")

    def __init__(self) -> None:
        super().__init__()
        self.interpreter: Optional[str] = None

    def is_available(self) -> bool:
        self.interpreter = self.which(*self.interpreters)
        return self.interpreter is not None

    def create(self, env: InterpreterEnvironment) -> None:
        if self.interpreter is None and not self.is_available():
            raise ProvisioningError("No Python interpreter found")
        self.cmd([str(self.interpreter), "-m", "venv", str(env.path)])

    def install(self, env: InterpreterEnvironment) -> None:
        self.cmd([str(env.pip), "install", "--upgrade", "pip"])
        self.cmd([str(env.pip), "install", *env.packages])


class ArchiveUnifier(ShellCmd):
    """Merges the minimal runtime's static archives into one archive"""

    def __init__(
        self,
        lib_dir: Pathlike,
        patterns: Sequence[str] = ARCHIVE_PATTERNS,
        archiver: str = "ar",
    ) -> None:
        self.lib_dir = Path(lib_dir)
        self.patterns = tuple(patterns)
        self.archiver = archiver
        self.log = logging.getLogger(self.__class__.__name__)

    @property
    def target(self) -> Path:
        """unified archive path"""
        return self.lib_dir / UNIFIED_ARCHIVE

    @property
    def script_path(self) -> Path:
        """transient MRI script path"""
        return self.lib_dir / MRI_SCRIPT

    def check(self) -> None:
        """ensure the docker build output exists"""
        if not self.lib_dir.is_dir():
            raise MissingPrerequisiteError(
                f"{self.lib_dir} not found. "
                f"Please run {PREREQUISITE_SCRIPT} first."
            )

    def discover(self) -> list[Path]:
        """return archives matching the patterns, in pattern order"""
        found: list[Path] = []
        for pattern in self.patterns:
            for path in sorted(self.lib_dir.glob(pattern)):
                if path.is_file() and path not in found:
                    found.append(path)
        return found

    def script(self, members: Sequence[Path]) -> str:
        """return MRI script which creates the unified archive"""
        lines = [f"CREATE {self.target.name}"]
        lines.extend(f"ADDLIB {m.name}" for m in members)
        lines.extend(["SAVE", "END"])
        return "\n".join(lines) + "\n"

    def unify(self) -> Path:
        """create unified archive from discovered archives

        Raises:
            MissingPrerequisiteError: lib_dir does not exist
            ArchiveToolError: archiver failed
        """
        self.check()
        members = self.discover()
        self.log.info(
            "Creating unified %s from %d archives", self.target.name, len(members)
        )
        try:
            self.script_path.write_text(self.script(members))
            self.cmd([self.archiver, "-M"], cwd=self.lib_dir, stdin=self.script_path)
        except OSError as e:
            raise ArchiveToolError(f"cannot write {self.script_path}: {e}") from e
        except CommandError as e:
            raise ArchiveToolError(f"{self.archiver} failed to create {self.target}") from e
        finally:
            self.remove(self.script_path)
        return self.target


class BuildInvoker(ShellCmd):
    """Runs cargo with the feature flags of a strategy"""

    def __init__(
        self, project: Optional[Project] = None, cargo: str = "cargo"
    ) -> None:
        self.project = project or Project()
        self.cargo = cargo
        self.log = logging.getLogger(self.__class__.__name__)

    def command(self, strategy: BuildStrategy) -> list[str]:
        """return build command for strategy"""
        if strategy not in FEATURES:
            return self.fail("no build command for strategy: %s", strategy.value)
        return [
            self.cargo,
            "build",
            "--release",
            "--features",
            FEATURES[strategy],
            "--no-default-features",
        ]

    def invoke(self, strategy: BuildStrategy, build_env: BuildEnvironment) -> None:
        """run build command with build_env added to a copy of os.environ

        Raises:
            BuildCommandError: build command failed
        """
        _cmd = self.command(strategy)
        for key, value in build_env.as_dict().items():
            self.log.debug("%s=%s", key, value)
        try:
            self.cmd(_cmd, cwd=self.project.root, env=build_env.merged(os.environ))
        except CommandError as e:
            raise BuildCommandError(f"{strategy.value} build failed") from e


@dataclass
class BuildReport:
    """Outcome of artifact validation"""

    strategy: BuildStrategy
    path: Path
    exists: bool
    size: int = 0

    @property
    def size_human(self) -> str:
        return format_size(self.size)


class ArtifactValidator:
    """Checks for the plugin binary and reports on it"""

    def __init__(self) -> None:
        self.log = logging.getLogger(self.__class__.__name__)

    def validate(self, strategy: BuildStrategy, path: Pathlike) -> BuildReport:
        """check artifact and print a report

        Raises:
            ArtifactMissingError: artifact missing for a strict strategy
        """
        path = Path(path)
        if not path.is_file():
            if strategy in STRICT_STRATEGIES:
                raise ArtifactMissingError(f"Build failed! {path} not found")
            self.log.debug("artifact not found: %s", path)
            return BuildReport(strategy, path, exists=False)

        try:
            size = path.stat().st_size
        except OSError as e:
            raise BuildError(f"cannot read {path}: {e}") from e
        report = BuildReport(strategy, path, exists=True, size=size)
        self.print_report(report)
        return report

    def print_report(self, report: BuildReport) -> None:
        """print strategy specific success message"""
        print()
        if report.strategy is BuildStrategy.MINIMAL:
            print("✓ Minimal build successful!")
            print(f"  Plugin: {report.path} ({report.size_human})")
            print("  Dependencies: Single file (Static Link)")
            return
        if report.strategy is BuildStrategy.STATIC:
            print("✓ Static (Download) build successful!")
        else:
            print("✓ Dynamic build successful!")
        print(f"  Binary: {report.path}")
        print(f"  Size: {report.size_human}")
        if report.strategy is BuildStrategy.STATIC:
            print("  Note: The libonnxruntime.so is bundled/downloaded by the build process.")


class StrategyDispatcher:
    """Selects and runs the build procedure for a commandline token"""

    BANNERS = {
        BuildStrategy.DYNAMIC: (
            "Building DYNAMIC (System ORT)...",
            "Requires 'onnxruntime' installed on the system.",
        ),
        BuildStrategy.STATIC: (
            "Building STATIC (Microsoft Downloaded)...",
            "Downloading/Using prebuilt ONNX Runtime from Microsoft.",
        ),
        BuildStrategy.MINIMAL: (
            "Building MINIMAL (Docker)...",
            "Linking statically against minimal runtime from Docker.",
        ),
    }

    def __init__(
        self,
        project: Optional[Project] = None,
        jobs: Optional[int] = None,
        provisioners: Optional[Sequence[EnvironmentProvisioner]] = None,
        prog: str = "ortbuild",
    ) -> None:
        self.project = project or Project()
        self.jobs = jobs
        self.provisioners = provisioners
        self.prog = prog
        self.venv = InterpreterEnvironment(self.project.venv)
        self.unifier = ArchiveUnifier(self.project.minimal_lib)
        self.invoker = BuildInvoker(self.project)
        self.validator = ArtifactValidator()
        self.log = logging.getLogger(self.__class__.__name__)

    def dispatch(self, token: Optional[str], dry_run: bool = False) -> int:
        """run the state selected by token and return the exit status"""
        strategy = parse_strategy(token)
        if strategy is BuildStrategy.HELP:
            print(usage(self.prog))
            return 0
        if strategy is BuildStrategy.INVALID:
            self.log.error("Unknown option: %s", token)
            print(usage(self.prog))
            return 1
        if dry_run:
            self.plan(strategy)
            return 0
        try:
            self.build(strategy)
        except BuildError as e:
            self.log.error("%s", e)
            return 1
        return 0

    def build_environment(self, strategy: BuildStrategy) -> BuildEnvironment:
        """environment for the strategy's build invocation"""
        return BuildEnvironment.for_strategy(
            strategy, lib_dir=self.unifier.lib_dir, jobs=self.jobs
        )

    def build(self, strategy: BuildStrategy) -> BuildReport:
        """prepare prerequisites, build and validate"""
        if not strategy.is_build:
            raise BuildError(f"not a build strategy: {strategy.value}")
        for line in self.BANNERS[strategy]:
            self.log.info(line)

        self.venv.ensure_ready(self.provisioners)

        if strategy is BuildStrategy.MINIMAL:
            self.unifier.unify()
            self.log.info("Embedding ONNX Runtime statically...")

        self.invoker.invoke(strategy, self.build_environment(strategy))
        return self.validator.validate(strategy, self.project.artifact)

    def plan(self, strategy: BuildStrategy) -> None:
        """Display build plan without provisioning or building."""
        build_env = self.build_environment(strategy)
        print("\n" + "=" * 60)
        print("BUILD PLAN (dry-run)")
        print("=" * 60)

        print("\n[Build Target]")
        print(f"  Strategy:          {strategy.value}")
        print(f"  Platform:          {PLATFORM}")
        print(f"  Artifact:          {self.project.artifact}")

        print("\n[Directories]")
        print(f"  Workspace:         {self.project.root}")
        print(f"  Python venv:       {self.venv.path}")

        print("\n[Command]")
        print(f"  {' '.join(self.invoker.command(strategy))}")

        print("\n[Environment]")
        for key, value in build_env.as_dict().items():
            print(f"  {key}={value}")

        if strategy is BuildStrategy.MINIMAL:
            print("\n[Archives]")
            if not self.unifier.lib_dir.is_dir():
                print(f"  {self.unifier.lib_dir} not found")
                print(f"  run {PREREQUISITE_SCRIPT} first")
            else:
                members = self.unifier.discover()
                for member in members:
                    print(f"  {member.name}")
                if not members:
                    print("  (none)")
                print(f"  -> {self.unifier.target}")

        print("\n" + "=" * 60)
        print("End of build plan. No changes were made.")
        print("=" * 60 + "\n")


def run(argv: Optional[Sequence[str]] = None) -> int:
    """parse commandline and dispatch, returning the exit status"""
    parser = argparse.ArgumentParser(
        prog="ortbuild",
        add_help=False,
        description="Builds the gtcrn ladspa plugin with onnxruntime",
    )
    opt = parser.add_argument

    # fmt: off
    opt("strategy", nargs="?", default=None, help="dynamic, static or minimal (default: dynamic)")
    opt("-h", "--help", help="show usage", action="store_true")
    opt("-j", "--jobs", help="# of build jobs (default: processor count)", type=int, default=None)
    opt("-n", "--dry-run", help="show build plan without building", action="store_true")
    opt("-r", "--root", help="workspace root (default: current directory)", metavar="DIR")
    # fmt: on

    args, extra = parser.parse_known_args(argv)
    given = [args.strategy] if args.strategy is not None else []
    if given and parse_strategy(args.strategy) is BuildStrategy.INVALID:
        token = args.strategy
    elif extra:
        # surplus arguments never select a strategy
        if parse_strategy(extra[0]) is BuildStrategy.INVALID:
            token = extra[0]
        else:
            token = " ".join(given + extra)
    elif args.help:
        token = "--help"
    elif given:
        token = args.strategy
    else:
        token = "dynamic"

    dispatcher = StrategyDispatcher(
        project=Project(args.root), jobs=args.jobs, prog=parser.prog
    )
    return dispatcher.dispatch(token, dry_run=args.dry_run)


def main() -> None:
    """commandline api entrypoint"""
    sys.exit(run())


if __name__ == "__main__":
    main()
