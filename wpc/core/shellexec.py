"""wpclone Shell Functions"""
import re
import subprocess
from typing import IO, Optional, Sequence, Union

from wpc.core.logging import Log


class CommandExecutionError(Exception):
    """custom Exception for command execution"""
    pass


class WPCShellExec:
    """Method to run shell commands"""
    def __init__(self):
        pass

    _SECRET_PATTERNS = [
        r'(--dbPassword\s+)(\S+)', r'(--password\s+)(\S+)',
        r'(--dbPassword=)(\S+)', r'(--password=)(\S+)',
        r'(\s-p)(\S+)',
    ]

    @staticmethod
    def _redact(s: str) -> str:
        for pat in WPCShellExec._SECRET_PATTERNS:
            s = re.sub(pat, r'\1***', s)
        return s

    @staticmethod
    def _shown(command: Union[str, Sequence[str]]) -> str:
        if isinstance(command, str):
            return WPCShellExec._redact(command)
        return WPCShellExec._redact(" ".join(map(str, command)))

    @staticmethod
    def cmd_exec(
        controller,
        command: Union[str, Sequence[str]],
        errormsg: str = '',
        log: bool = True,
        stdin: Optional[IO] = None,
        stdout: Optional[IO] = None,
    ) -> bool:
        """Run a command and return True when it exits 0.

        Strings run via shell; sequences run without shell. ``stdin`` and
        ``stdout`` may be open file objects, used to feed or capture SQL
        dumps without going through a shell redirect.
        """
        try:
            use_shell = isinstance(command, str)
            if log:
                Log.debug(controller,
                          f"Running command: {WPCShellExec._shown(command)}")

            proc = subprocess.run(
                command,
                stdin=stdin,
                stdout=stdout if stdout is not None else subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                shell=use_shell,
            )

            output = proc.stdout if stdout is None else '<redirected>'
            if proc.stderr and proc.stderr.strip():
                Log.debug(controller, f"Command Output: {output}, "
                          f"\nCommand Error: {proc.stderr}")
            else:
                Log.debug(controller, f"Command Output: {output}")

            if proc.returncode != 0 and errormsg:
                Log.error(controller, errormsg, exit=False)

            return proc.returncode == 0

        except OSError as e:
            Log.debug(controller, str(e))
            raise CommandExecutionError(str(e))

    @staticmethod
    def cmd_exec_stdout(controller, command, errormsg: str = '',
                        log: bool = True) -> str:
        """Run command and return stdout as text, whatever the exit code."""
        try:
            if log:
                Log.debug(controller,
                          f"Running command: {WPCShellExec._shown(command)}")

            use_shell = isinstance(command, str)
            proc = subprocess.run(command, shell=use_shell,
                                  capture_output=True, text=True,
                                  encoding="utf-8", errors="replace")

            if proc.stderr.strip():
                Log.debug(controller, f"Command Output: {proc.stdout}, "
                          f"\nCommand Error: {proc.stderr}")
            else:
                Log.debug(controller, f"Command Output: {proc.stdout}")

            if proc.returncode != 0 and errormsg:
                Log.error(controller, errormsg, exit=False)
            return proc.stdout

        except OSError as e:
            Log.debug(controller, str(e))
            raise CommandExecutionError(str(e))
