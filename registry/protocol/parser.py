"""
Protocol Parser Module

This module handles both directions of the registry text protocol: the
server parses requests and formats responses, the client formats commands
and parses responses.
"""

import json
import re
from typing import Optional, Tuple

from .commands import Command, CommandType, Response
from ..config.settings import settings

_RECORD_ID = re.compile(r"^[0-9]+$")


class ProtocolParser:
    """
    Parser for the registry text protocol.

    Protocol Format:
        Request:  <COMMAND> [ARGS...]\\n
        Response: OK <json>\\n | ERROR <code> <message>\\n

    Commands:
        ADD "<name>"              -> OK <id>
        GET <id>                  -> OK {"id": <id>, "name": "<name>"}
        RENAME <id> "<name>"      -> OK true | OK false
        SEARCH "<substring>"      -> OK [[<id>, "<name>"], ...]
        LIST                      -> OK [[<id>, "<name>"], ...]
        QUIT                      -> (connection closed)

    String arguments are JSON string literals, so names may hold spaces,
    quotes or newlines and still travel on one line. Command words are
    case-insensitive.

    Constraints:
        - Names: at most settings.MAX_NAME_LENGTH characters
        - Ids: non-negative decimal integers
    """

    def __init__(self, max_name_length: int = None):
        self.max_name_length = (
            max_name_length if max_name_length is not None else settings.MAX_NAME_LENGTH
        )

    # ------------------------------------------------------------------ #
    # Server side
    # ------------------------------------------------------------------ #

    def parse_request(self, data: str) -> Command:
        """
        Parse a raw request string into a Command object.

        Args:
            data: Raw request string (may include trailing newline)

        Returns:
            Command object representing the parsed request.
            Returns Command with type=UNKNOWN for invalid/malformed requests.

        Examples:
            >>> parser = ProtocolParser()
            >>> cmd = parser.parse_request('RENAME 3 "Ada Lovelace"')
            >>> cmd.type == CommandType.RENAME
            True
            >>> cmd.record_id, cmd.text
            (3, 'Ada Lovelace')
        """
        raw = data.strip()
        if not raw:
            return Command.invalid(raw, "empty command")

        parts = raw.split(None, 1)
        command_name = parts[0].upper()
        rest = parts[1] if len(parts) > 1 else ""

        if command_name == "ADD":
            return self._parse_add(rest, raw)
        if command_name == "GET":
            return self._parse_get(rest, raw)
        if command_name == "RENAME":
            return self._parse_rename(rest, raw)
        if command_name == "SEARCH":
            return self._parse_search(rest, raw)
        if command_name in ("LIST", "QUIT"):
            if rest:
                return Command.invalid(raw, f"{command_name} takes no arguments")
            return Command(type=CommandType[command_name], raw=raw)

        return Command.invalid(raw, f"unknown command {parts[0]!r}")

    def _parse_add(self, rest: str, raw: str) -> Command:
        """
        Parse an ADD command.

        Format: ADD "<name>"
        """
        name, error, code = self._parse_name(rest)
        if error:
            return Command.invalid(raw, error, code)
        return Command(type=CommandType.ADD, text=name, raw=raw)

    def _parse_get(self, rest: str, raw: str) -> Command:
        """
        Parse a GET command.

        Format: GET <id>
        """
        record_id = self._parse_id(rest)
        if record_id is None:
            return Command.invalid(raw, "GET requires a record id")
        return Command(type=CommandType.GET, record_id=record_id, raw=raw)

    def _parse_rename(self, rest: str, raw: str) -> Command:
        """
        Parse a RENAME command.

        Format: RENAME <id> "<name>"
        """
        parts = rest.split(None, 1)
        if len(parts) != 2:
            return Command.invalid(raw, "RENAME requires a record id and a name")

        record_id = self._parse_id(parts[0])
        if record_id is None:
            return Command.invalid(raw, f"invalid record id {parts[0]!r}")

        name, error, code = self._parse_name(parts[1])
        if error:
            return Command.invalid(raw, error, code)
        return Command(type=CommandType.RENAME, record_id=record_id, text=name, raw=raw)

    def _parse_search(self, rest: str, raw: str) -> Command:
        """
        Parse a SEARCH command.

        Format: SEARCH ["<substring>"]  (no argument matches everything)
        """
        if not rest:
            return Command(type=CommandType.SEARCH, text="", raw=raw)

        substring, error, code = self._parse_name(rest)
        if error:
            return Command.invalid(raw, error, code)
        return Command(type=CommandType.SEARCH, text=substring, raw=raw)

    @staticmethod
    def _parse_id(token: str) -> Optional[int]:
        token = token.strip()
        if not _RECORD_ID.match(token):
            return None
        return int(token)

    def _parse_name(self, token: str) -> Tuple[str, str, str]:
        """Decode a JSON string literal; return (value, error, error_code)."""
        try:
            value = json.loads(token)
        except ValueError:
            return "", "expected a JSON string literal", "invalid_command"

        if not isinstance(value, str):
            return "", "expected a JSON string literal", "invalid_command"
        if len(value) > self.max_name_length:
            return "", f"name longer than {self.max_name_length} characters", "validation"
        return value, "", ""

    def format_response(self, response: Response) -> str:
        """
        Format a Response object into a protocol string.

        Returns:
            Formatted response string WITH trailing newline.

        Examples:
            >>> parser = ProtocolParser()
            >>> parser.format_response(Response.ok(0))
            'OK 0\\n'
            >>> parser.format_response(Response.not_found(9))
            'ERROR not_found record 9 not found\\n'
        """
        if response.is_ok:
            return f"OK {json.dumps(response.value)}\n"

        message = " ".join(response.message.split())
        code = response.code or "internal"
        if message:
            return f"ERROR {code} {message}\n"
        return f"ERROR {code}\n"

    # ------------------------------------------------------------------ #
    # Client side
    # ------------------------------------------------------------------ #

    def format_command(self, command: Command) -> str:
        """
        Format a command for sending over the wire.

        Returns:
            Formatted command string with newline
        """
        if command.type == CommandType.ADD:
            return f"ADD {json.dumps(command.text)}\n"
        if command.type == CommandType.GET:
            return f"GET {command.record_id}\n"
        if command.type == CommandType.RENAME:
            return f"RENAME {command.record_id} {json.dumps(command.text)}\n"
        if command.type == CommandType.SEARCH:
            return f"SEARCH {json.dumps(command.text)}\n"
        if command.type in (CommandType.LIST, CommandType.QUIT):
            return f"{command.type.name}\n"
        raise ValueError(f"cannot format command of type {command.type.name}")

    def parse_response(self, line: str) -> Response:
        """
        Parse a response line received from the server.

        Malformed lines become ERROR responses with code ``transport``.
        """
        parts = line.strip().split(None, 1)
        if not parts:
            return Response.error("empty response from server", code="transport")

        status = parts[0].upper()
        body = parts[1] if len(parts) > 1 else ""

        if status == "OK":
            if not body:
                return Response.ok()
            try:
                return Response.ok(json.loads(body))
            except ValueError:
                return Response.error(f"malformed response body: {body[:80]!r}", code="transport")

        if status == "ERROR":
            code, _, message = body.partition(" ")
            return Response.error(message, code=code or "internal")

        return Response.error(f"unknown status: {status}", code="transport")
