from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Iterator, List, Optional, Tuple
from urllib.parse import unquote, unquote_plus

from .types import EventCategory

# Attacker-controlled input; anything past this is not scanned.
MAX_SCAN_CHARS = 64 * 1024

# Percent-decoding passes applied on top of the raw value (catches %252e style).
DECODE_PASSES = 2


@dataclass(frozen=True)
class Signature:
    name: str
    family: str
    pattern: "re.Pattern[str]"

    def search(self, text: str) -> bool:
        return self.pattern.search(text) is not None


def _sig(name: str, family: str, regex: str) -> Signature:
    return Signature(name=name, family=family, pattern=re.compile(regex, re.IGNORECASE))


def _token(name: str, family: str, literal: str) -> Signature:
    return _sig(name, family, re.escape(literal))


@dataclass(frozen=True)
class MatchResult:
    matched: bool
    category: Optional[EventCategory] = None
    signature: Optional[str] = None
    family: Optional[str] = None

    def __bool__(self) -> bool:
        return self.matched


NO_MATCH = MatchResult(matched=False)


# -----------------------------
# Signature tables
# -----------------------------

PATH_TRAVERSAL: Tuple[Signature, ...] = (
    _token("../", "path_traversal", "../"),
    _token("..\\", "path_traversal", "..\\"),
    _token("%2e%2e", "path_traversal", "%2e%2e"),
    _token("%252e%252e", "path_traversal", "%252e%252e"),
    _sig("..%2f", "path_traversal", r"\.\.%(?:2f|5c)"),
)

SCRIPT_INJECTION: Tuple[Signature, ...] = (
    _sig("<script", "script_injection", r"<\s*script"),
    _sig("script>", "script_injection", r"script\s*>"),
    _sig("javascript:", "script_injection", r"javascript\s*:"),
    _sig("vbscript:", "script_injection", r"vbscript\s*:"),
    _sig("onload=", "script_injection", r"\bonload\s*="),
    _sig("onerror=", "script_injection", r"\bonerror\s*="),
    _sig("onclick=", "script_injection", r"\bonclick\s*="),
    _sig("onmouseover=", "script_injection", r"\bonmouseover\s*="),
    _sig("eval(", "script_injection", r"\beval\s*\("),
    _sig("alert(", "script_injection", r"\balert\s*\("),
    _sig("confirm(", "script_injection", r"\bconfirm\s*\("),
    _sig("prompt(", "script_injection", r"\bprompt\s*\("),
    _token("document.cookie", "script_injection", "document.cookie"),
    _token("document.write", "script_injection", "document.write"),
)

SQL_INJECTION: Tuple[Signature, ...] = (
    _sig("union select", "sql_injection", r"\bunion(?:\s+all)?\s+select\b"),
    _sig("drop table", "sql_injection", r"\bdrop\s+table\b"),
    _sig("insert into", "sql_injection", r"\binsert\s+into\b"),
    _sig("delete from", "sql_injection", r"\bdelete\s+from\b"),
    _sig("update set", "sql_injection", r"\bupdate\s+[\w\[\]`\".]+\s+set\b"),
    _sig("exec(", "sql_injection", r"\bexec(?:ute)?\s*\("),
    _sig("; exec", "sql_injection", r";\s*exec(?:ute)?\b"),
    _token("sp_executesql", "sql_injection", "sp_executesql"),
    _token("xp_cmdshell", "sql_injection", "xp_cmdshell"),
    _sig("'; --", "sql_injection", r"'\s*;\s*--"),
    _sig("' or '1'='1", "sql_injection", r"'\s*or\s*'1'\s*=\s*'1"),
    _sig("\" or \"1\"=\"1", "sql_injection", r"\"\s*or\s*\"1\"\s*=\s*\"1"),
    _sig("or 1=1", "sql_injection", r"\bor\s+1\s*=\s*1\b"),
    _sig("and 1=1", "sql_injection", r"\band\s+1\s*=\s*1\b"),
    _sig("having 1=1", "sql_injection", r"\bhaving\s+1\s*=\s*1\b"),
)

# Form-field XSS grammar is the script-injection table minus the bare closing tag.
XSS: Tuple[Signature, ...] = tuple(s for s in SCRIPT_INJECTION if s.name != "script>")

UA_ALLOW: Tuple[Signature, ...] = tuple(
    _sig(name, "ua_allow", rx)
    for name, rx in (
        # search engines
        ("googlebot", r"googlebot"),
        ("bingbot", r"bingbot"),
        ("slurp", r"yahoo!\s*slurp"),
        ("duckduckbot", r"duckduckbot"),
        ("baiduspider", r"baiduspider"),
        ("yandexbot", r"yandex(?:bot|images)"),
        ("applebot", r"applebot"),
        # link previews
        ("facebookexternalhit", r"facebookexternalhit|facebot"),
        ("twitterbot", r"twitterbot"),
        ("linkedinbot", r"linkedinbot"),
        ("slackbot", r"slackbot|slack-imgproxy"),
        ("discordbot", r"discordbot"),
        ("whatsapp", r"whatsapp"),
        ("telegrambot", r"telegrambot"),
        ("pinterestbot", r"pinterestbot"),
        # api / testing clients and health checkers
        ("postman", r"postmanruntime"),
        ("insomnia", r"\binsomnia/"),
        ("jmeter", r"apache-jmeter"),
        ("k6", r"\bk6/"),
        ("kube-probe", r"kube-probe"),
        ("elb-healthchecker", r"elb-healthchecker"),
        ("googlehc", r"googlehc"),
        ("uptimerobot", r"uptimerobot"),
        ("pingdom", r"pingdom"),
        ("statuscake", r"statuscake"),
    )
)

UA_SCANNER: Tuple[Signature, ...] = tuple(
    _sig(name, "ua_scanner", rx)
    for name, rx in (
        ("sqlmap", r"sqlmap"),
        ("nmap", r"\bnmap\b"),
        ("nikto", r"nikto"),
        ("dirbuster", r"dirbuster"),
        ("dirb", r"\bdirb\b"),
        ("gobuster", r"gobuster"),
        ("burp", r"\bburp"),
        ("zap", r"\bzap/|owasp[\s_-]?zap|zaproxy"),
        ("masscan", r"masscan"),
        ("nessus", r"nessus"),
        ("openvas", r"openvas"),
        ("w3af", r"w3af"),
        ("whatweb", r"whatweb"),
        ("httprint", r"httprint"),
        ("acunetix", r"acunetix"),
        ("netsparker", r"netsparker"),
        ("wpscan", r"wpscan"),
        ("nuclei", r"\bnuclei\b"),
        ("hydra", r"\bhydra\b"),
        ("metasploit", r"metasploit"),
        ("ffuf", r"\bffuf\b"),
        ("feroxbuster", r"feroxbuster"),
        ("wfuzz", r"wfuzz"),
        ("zgrab", r"zgrab"),
        ("arachni", r"arachni"),
        ("skipfish", r"skipfish"),
        ("commix", r"commix"),
    )
)

UA_AUTOMATION: Tuple[Signature, ...] = tuple(
    _sig(name, "ua_automation", rx)
    for name, rx in (
        ("curl", r"\bcurl/"),
        ("wget", r"\bwget/"),
        ("python-requests", r"python-requests"),
        ("python-urllib", r"python-urllib"),
        ("python-httpx", r"python-httpx"),
        ("aiohttp", r"aiohttp"),
        ("go-http-client", r"go-http-client"),
        ("java", r"\bjava/"),
        ("okhttp", r"okhttp"),
        ("apache-httpclient", r"apache-httpclient"),
        ("libwww-perl", r"libwww-perl"),
        ("node-fetch", r"node-fetch"),
        ("axios", r"\baxios/"),
        ("scrapy", r"scrapy"),
        ("headless", r"headlesschrome|phantomjs"),
        ("bot", r"bot"),
        ("crawler", r"crawler"),
        ("spider", r"spider"),
        ("scraper", r"scraper"),
    )
)


# -----------------------------
# Registry
# -----------------------------

@dataclass(frozen=True)
class PatternRegistry:
    """
    Immutable signature tables. Built once per process and shared by reference
    across every in-flight request; no member is ever mutated after build.
    """

    url: Tuple[Signature, ...] = field(default=PATH_TRAVERSAL + SCRIPT_INJECTION + SQL_INJECTION)
    xss: Tuple[Signature, ...] = field(default=XSS)
    sqli: Tuple[Signature, ...] = field(default=SQL_INJECTION)
    ua_allow: Tuple[Signature, ...] = field(default=UA_ALLOW)
    ua_scanner: Tuple[Signature, ...] = field(default=UA_SCANNER)
    ua_automation: Tuple[Signature, ...] = field(default=UA_AUTOMATION)

    def extend(
        self,
        *,
        ua_allow: Iterable[str] = (),
        ua_scanner: Iterable[str] = (),
        ua_automation: Iterable[str] = (),
    ) -> "PatternRegistry":
        """Return a new registry with extra user-agent tokens (plain substrings)."""
        return replace(
            self,
            ua_allow=self.ua_allow + tuple(_token(t, "ua_allow", t) for t in ua_allow if t),
            ua_scanner=self.ua_scanner + tuple(_token(t, "ua_scanner", t) for t in ua_scanner if t),
            ua_automation=self.ua_automation
            + tuple(_token(t, "ua_automation", t) for t in ua_automation if t),
        )


def build_default_registry() -> PatternRegistry:
    return PatternRegistry()


DEFAULT_REGISTRY = build_default_registry()


# -----------------------------
# Matching
# -----------------------------

def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        s = value
    elif isinstance(value, (bytes, bytearray)):
        s = bytes(value).decode("utf-8", errors="replace")
    else:
        try:
            s = str(value)
        except Exception:
            return ""
    return s[:MAX_SCAN_CHARS]


def _decoded_variants(value: str, *, plus_as_space: bool) -> Iterator[str]:
    decode = unquote_plus if plus_as_space else unquote
    current = value
    yield current
    for _ in range(DECODE_PASSES):
        try:
            nxt = decode(current, errors="replace")
        except Exception:
            return
        if nxt == current:
            return
        current = nxt[:MAX_SCAN_CHARS]
        yield current


def first_match(signatures: Iterable[Signature], texts: Iterable[str]) -> Optional[Signature]:
    candidates = [t for t in texts if t]
    if not candidates:
        return None
    for sig in signatures:
        for text in candidates:
            if sig.search(text):
                return sig
    return None


def match_url_threat(
    path: Any, query: Any = "", registry: PatternRegistry = DEFAULT_REGISTRY
) -> MatchResult:
    """
    Scan path + query (raw and percent-decoded) against the URL table.
    Never raises; malformed input is simply "no match".
    """
    try:
        texts: List[str] = list(_decoded_variants(_as_text(path), plus_as_space=False))
        texts.extend(_decoded_variants(_as_text(query), plus_as_space=True))
        sig = first_match(registry.url, texts)
    except Exception:
        return NO_MATCH
    if sig is None:
        return NO_MATCH
    return MatchResult(
        matched=True,
        category=EventCategory.MALICIOUS_URL_PATTERN,
        signature=sig.name,
        family=sig.family,
    )


def _grammars(registry: PatternRegistry) -> Tuple[Tuple[EventCategory, Tuple[Signature, ...]], ...]:
    return (
        (EventCategory.XSS_PATTERN_DETECTION, registry.xss),
        (EventCategory.SQL_INJECTION_PATTERN_DETECTION, registry.sqli),
    )


def match_body_threats(value: Any, registry: PatternRegistry = DEFAULT_REGISTRY) -> List[MatchResult]:
    """One result per grammar (XSS, SQLi) that matched the field value."""
    try:
        text = _as_text(value)
        if not text:
            return []
        out: List[MatchResult] = []
        for category, table in _grammars(registry):
            sig = first_match(table, (text,))
            if sig is not None:
                out.append(
                    MatchResult(matched=True, category=category, signature=sig.name, family=sig.family)
                )
        return out
    except Exception:
        return []


def match_body_threat(value: Any, registry: PatternRegistry = DEFAULT_REGISTRY) -> MatchResult:
    hits = match_body_threats(value, registry)
    return hits[0] if hits else NO_MATCH


def match_user_agent(signatures: Iterable[Signature], header: Any) -> Optional[Signature]:
    try:
        return first_match(signatures, (_as_text(header),))
    except Exception:
        return None


__all__ = [
    "MAX_SCAN_CHARS",
    "Signature",
    "MatchResult",
    "NO_MATCH",
    "PatternRegistry",
    "DEFAULT_REGISTRY",
    "build_default_registry",
    "match_url_threat",
    "match_body_threat",
    "match_body_threats",
    "match_user_agent",
    "first_match",
]
