import logging
import os
import sys
import time

from kp184_errors import (
    InvalidArgumentError,
    InvalidCommandError,
    KP184Error,
    NeedArgumentsError,
)
from kp184_frames import MODE_LETTERS, MODE_SETTINGS, SCALE, encode_setting
from kp184_link import Session, SerialLink, configure_port
from kp184_load import KP184, Timing, format_status
from kp184_profile import DEFAULT_PROFILE_PATH, DeviceProfile, remove_profile, save_profile

# -------------------------------------------------------------------------------------------------
# kp184 - drive a Kunkin KP184 electronic load over RS232 from any script.
#
# USE: kp184 COMMAND [ARGUMENTS]
#   kp184 v                            version
#   kp184 i SERIAL_PORT BAUDRATE NODE  init: check the port, store the profile (./kp184_conf)
#   kp184 c                            cleanup: remove the profile
#   kp184 s on|off                     switch the load on/off
#   kp184 m v|c|r|p VALUE              mode CV/CC/CR/CP and its setting (V, A, ohm, W)
#   kp184 r                            print mode, real voltage and real current
#
# Only the first letter of COMMAND counts ("kp184 read" == "kp184 r").
# Always check the exit code (see kp184_errors.ExitCode). Never run the load unattended.
#
# ENVIRONMENT
#   KP184_CONF      profile path (default ./kp184_conf)
#   KP184_DELAY_MS  pause between frames of one command (default 200)
#   KP184_DEBUG     set to 1 to dump every frame on stderr
# -------------------------------------------------------------------------------------------------

TOOL_NAME = "kp184"
TOOL_VERSION = "0.1"

logger = logging.getLogger(__name__)


def _need(name: str, args: list[str], n: int) -> None:
    if len(args) != n:
        raise NeedArgumentsError(f"{name}: missing or too many argument(s)")


def _parse_int(name: str, text: str) -> int:
    try:
        return int(text, 10)
    except ValueError:
        raise InvalidArgumentError(f"invalid {name} {text!r}") from None


def _timing() -> Timing:
    try:
        return Timing.from_env()
    except ValueError as e:
        raise InvalidArgumentError(str(e)) from e


def _profile_path() -> str:
    return os.environ.get("KP184_CONF") or DEFAULT_PROFILE_PATH


class _Cli:
    def __init__(self, link_factory=SerialLink, sleep=time.sleep):
        self.link_factory = link_factory
        self.sleep = sleep

    def _load(self, session: Session, timing: Timing) -> KP184:
        return KP184(session.link, session.profile.node, timing, sleep=self.sleep)

    def version(self, args: list[str]) -> None:
        _need("version", args, 0)
        print(f"{TOOL_NAME} version {TOOL_VERSION}")

    def init(self, args: list[str]) -> None:
        _need("init", args, 3)
        port = args[0]
        baudrate = _parse_int("baudrate", args[1])
        node = _parse_int("node", args[2])
        try:
            profile = DeviceProfile(port=port, baudrate=baudrate, node=node)
        except ValueError as e:
            raise InvalidArgumentError(f"init: {e}") from e

        configure_port(profile.port, profile.baudrate, self.link_factory)
        save_profile(profile, _profile_path())
        print("OK")

    def cleanup(self, args: list[str]) -> None:
        _need("cleanup", args, 0)
        remove_profile(_profile_path())
        print("OK")

    def switch(self, args: list[str]) -> None:
        _need("switch", args, 1)
        state = args[0]
        if state not in ("on", "off"):
            raise InvalidArgumentError(f"switch: invalid argument {state}")
        timing = _timing()

        with Session(_profile_path(), self.link_factory) as session:
            self._load(session, timing).switch(state == "on")
        print("OK")

    def mode(self, args: list[str]) -> None:
        _need("mode", args, 2)
        mode = MODE_LETTERS.get(args[0])
        if mode is None:
            raise InvalidArgumentError(f"mode: invalid mode '{args[0]}'")
        try:
            encode_setting(args[1], SCALE[MODE_SETTINGS[mode]])
        except ValueError as e:
            raise InvalidArgumentError(f"mode: {e}") from e
        timing = _timing()

        with Session(_profile_path(), self.link_factory) as session:
            self._load(session, timing).set_mode(mode, args[1])
        print("OK")

    def read(self, args: list[str]) -> None:
        _need("read", args, 0)
        timing = _timing()

        with Session(_profile_path(), self.link_factory) as session:
            status = self._load(session, timing).read_status()
        print(format_status(status))


def _setup_logging() -> None:
    debug = os.environ.get("KP184_DEBUG", "").strip() not in ("", "0")
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format=f"{TOOL_NAME}: %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main(argv: list[str] | None = None, link_factory=SerialLink, sleep=time.sleep) -> int:
    argv = sys.argv[1:] if argv is None else list(argv)
    _setup_logging()

    cli = _Cli(link_factory=link_factory, sleep=sleep)
    commands = {
        "v": cli.version,
        "i": cli.init,
        "c": cli.cleanup,
        "s": cli.switch,
        "m": cli.mode,
        "r": cli.read,
    }

    try:
        if not argv:
            raise NeedArgumentsError(f"wrong usage: {TOOL_NAME} COMMAND [ARGUMENTS]")
        cmd = argv[0][:1]
        if cmd not in commands:
            raise InvalidCommandError(f"invalid command '{cmd}'")
        commands[cmd](argv[1:])
    except KP184Error as e:
        print(f"{TOOL_NAME}: {e}", file=sys.stderr)
        logger.debug("Failed with exit code %d", e.exit_code)
        return int(e.exit_code)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
