"""wpclone hosting panel (CyberPanel CLI) wrapper"""
import json
import re
from typing import Any, NamedTuple

from wpc.core.exc import WPCError
from wpc.core.logging import Log
from wpc.core.shellexec import CommandExecutionError, WPCShellExec
from wpc.core.variables import WPCVar


class PanelError(WPCError):
    """Raised when the panel CLI cannot be run at all"""
    pass


class PanelResponse(NamedTuple):
    """Parsed output of one panel CLI call"""
    success: bool
    error_message: str = ''
    payload: Any = None
    raw: str = ''

    @classmethod
    def parse(cls, raw):
        """
        Build a response from the CLI stdout. The panel prints a JSON
        object such as ``{"success": 1, "errorMessage": "None"}``,
        sometimes surrounded by other text.
        """
        payload = parse_json_relaxed(raw)
        if not isinstance(payload, dict):
            return cls(False, 'unparseable panel output', payload, raw or '')
        success = str(payload.get('success', '0')).strip().lower() in (
            '1', 'true')
        error = payload.get('errorMessage') or payload.get('error_message')
        if error in (None, 'None'):
            error = ''
        return cls(success, str(error), payload, raw or '')


def _strip_ansi(text):
    return re.sub(r"\x1b\[[0-9;]*[A-Za-z]", "", text)


def parse_json_relaxed(text, default=None):
    """Parse JSON with basic tolerance for noise.

    - Strips BOM and ANSI codes
    - Decodes JSON that was encoded twice (a JSON string holding JSON)
    - Falls back to the substring between the first '{' and last '}'
      or first '[' and last ']'
    """
    if not text:
        return default
    s = _strip_ansi(text.lstrip("\ufeff").strip())
    candidates = [s]
    for left, right in (('{', '}'), ('[', ']')):
        lb, rb = s.find(left), s.rfind(right)
        if lb != -1 and rb > lb:
            candidates.append(s[lb:rb + 1])
    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(data, str):
            try:
                data = json.loads(data)
            except ValueError:
                pass
        return data
    return default


class WPCPanel():
    """Run hosting panel CLI subcommands"""

    def _run(self, args, binary=WPCVar.wpc_panel_bin):
        try:
            return WPCShellExec.cmd_exec_stdout(self, [binary] + list(args))
        except CommandExecutionError as e:
            raise PanelError("unable to run {0}: {1}".format(binary, e))

    def list_sites(self, binary=WPCVar.wpc_panel_bin):
        """
        Return ``(domains, raw)``. ``domains`` is None when the listing
        could not be parsed.
        """
        raw = WPCPanel._run(self, ['listWebsitesJson'], binary)
        data = parse_json_relaxed(raw)
        if isinstance(data, dict):
            data = data.get('data', data.get('websites'))
        if not isinstance(data, list):
            Log.debug(self, "Could not parse site list")
            return None, raw
        domains = []
        for entry in data:
            if isinstance(entry, dict) and entry.get('domain'):
                domains.append(str(entry['domain']).strip().lower())
            elif isinstance(entry, str):
                domains.append(entry.strip().lower())
        return domains, raw

    def delete_site(self, domain, binary=WPCVar.wpc_panel_bin):
        """Delete a site. Returns True when the CLI exits 0"""
        try:
            return WPCShellExec.cmd_exec(
                self, [binary, 'deleteWebsite', '--domainName', domain])
        except CommandExecutionError as e:
            raise PanelError("unable to run {0}: {1}".format(binary, e))

    def create_site(self, domain, package, owner, email, php,
                    ssl=False, binary=WPCVar.wpc_panel_bin):
        raw = WPCPanel._run(self, [
            'createWebsite',
            '--package', package,
            '--owner', owner,
            '--domainName', domain,
            '--email', email,
            '--php', php,
            '--ssl', '1' if ssl else '0'], binary)
        return PanelResponse.parse(raw)

    def create_email(self, domain, username, password,
                     binary=WPCVar.wpc_panel_bin):
        raw = WPCPanel._run(self, [
            'createEmail',
            '--domainName', domain,
            '--userName', username,
            '--password', password], binary)
        return PanelResponse.parse(raw)

    def create_database(self, domain, db_name, db_user, db_password,
                        binary=WPCVar.wpc_panel_bin):
        raw = WPCPanel._run(self, [
            'createDatabase',
            '--databaseWebsite', domain,
            '--dbName', db_name,
            '--dbUsername', db_user,
            '--dbPassword', db_password], binary)
        return PanelResponse.parse(raw)
