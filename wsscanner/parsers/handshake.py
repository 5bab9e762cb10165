from typing import Dict, Optional
from urllib.parse import parse_qs, urlsplit


class HandshakeRequest:
    def __init__(self, raw: str = "") -> None:
        """
        GET /chat?token=xxx HTTP/1.1
        Host: example.com
        Upgrade: websocket
        Connection: Upgrade
        Origin: https://example.com
        """

        self.method = ""
        self.path = ""
        self.target = ""
        self.parameters = {}
        self.headers = {}
        self.host = ""
        self.raw = raw

        if raw:
            self.parse(raw)

    @classmethod
    def from_file(cls, filename: str) -> "HandshakeRequest":
        with open(filename, 'r', encoding='utf-8', errors='ignore') as f:
            return cls(f.read())

    @classmethod
    def from_headers(cls, path: str, headers: Dict[str, str], method: str = "GET") -> "HandshakeRequest":
        """Builds the request a client sent from its parts."""
        lines = [f"{method} {path or '/'} HTTP/1.1"]
        lines += [f"{k}: {v}" for k, v in headers.items()]
        return cls("\r\n".join(lines) + "\r\n\r\n")

    def parse(self, raw: str) -> Dict:
        raw = raw.replace("\r\n", "\n")
        head, _, _ = raw.partition("\n\n")
        if not head.strip():
            raise ValueError("Handshake request is empty.")

        lines = [l for l in head.split("\n") if l.strip()]

        # request line: METHOD SP PATH [SP HTTP/x.y]
        parts0 = lines[0].split()
        if len(parts0) < 2:
            raise ValueError(f"Invalid request line: {lines[0]!r}")
        self.method = parts0[0]
        self.target = parts0[1]

        url_parts = urlsplit(self.target)
        self.path = url_parts.path
        self.parameters = dict(
            parse_qs(url_parts.query, keep_blank_values=True))

        self.headers = {}
        for line in lines[1:]:
            if ':' in line:
                k, v = line.split(':', 1)
                self.headers[k.strip()] = v.strip()

        self.host = self.header('Host') or ''

        return {
            'host': self.host,
            'method': self.method,
            'path': self.path,
            'parameters': self.parameters,
            'headers': self.headers,
        }

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        lname = name.lower()
        for k, v in self.headers.items():
            if k.lower() == lname:
                return v
        return None

    def has_header(self, name: str) -> bool:
        return self.header(name) is not None

    def __str__(self) -> str:
        return f"Method: {self.method}\nPath: {self.path}\nHost: {self.host}\nParameters: {self.parameters}\nHeaders: {self.headers}"
