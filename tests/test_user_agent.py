import pytest

from tripwire_rules import DEFAULT_REGISTRY, EventCategory, Severity, UserAgentTier, classify_user_agent

BROWSER = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_2) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.2 Safari/605.1.15"
)


@pytest.mark.parametrize(
    "path",
    ["/health", "/healthcheck", "/ping", "/status", "/ready", "/metrics", "/health/live", "/healthz", "/HEALTH"],
)
def test_missing_ua_on_health_paths_is_exempt(path):
    c = classify_user_agent(None, path)
    assert c.tier == UserAgentTier.EXEMPT
    assert c.finding is None


@pytest.mark.parametrize("header", [None, "", "   "])
def test_missing_ua_elsewhere_is_low(header):
    c = classify_user_agent(header, "/orders")
    assert c.tier == UserAgentTier.MISSING
    assert c.finding.category == EventCategory.MISSING_USER_AGENT
    assert c.finding.severity == Severity.LOW


def test_health_exemption_is_segment_aware():
    c = classify_user_agent(None, "/healthcheck-report")
    assert c.tier == UserAgentTier.MISSING


@pytest.mark.parametrize(
    "ua",
    [
        "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)",
        "Mozilla/5.0 (compatible; bingbot/2.0; +http://www.bing.com/bingbot.htm)",
        "facebookexternalhit/1.1 (+http://www.facebook.com/externalhit_uatext.php)",
        "Slackbot-LinkExpanding 1.0 (+https://api.slack.com/robots)",
        "PostmanRuntime/7.36.0",
        "kube-probe/1.28",
    ],
)
def test_allowlisted_agents_are_legitimate(ua):
    c = classify_user_agent(ua, "/")
    assert c.tier == UserAgentTier.LEGITIMATE
    assert c.finding is None


@pytest.mark.parametrize(
    "ua,name",
    [
        ("sqlmap/1.7.2#stable (https://sqlmap.org)", "sqlmap"),
        ("Mozilla/5.00 (Nikto/2.5.0) (Evasions:None) (Test:000001)", "nikto"),
        ("Mozilla/5.0 (compatible; Nmap Scripting Engine; https://nmap.org/book/nse.html)", "nmap"),
        ("gobuster/3.6", "gobuster"),
        ("Fuzz Faster U Fool v2.1.0 ffuf", "ffuf"),
    ],
)
def test_security_tooling_is_high(ua, name):
    c = classify_user_agent(ua, "/")
    assert c.tier == UserAgentTier.SCANNER
    assert c.signature == name
    assert c.finding.category == EventCategory.SECURITY_SCANNER_USER_AGENT
    assert c.finding.severity == Severity.HIGH
    assert c.finding.matched_value == name


@pytest.mark.parametrize(
    "ua,name",
    [
        ("curl/8.4.0", "curl"),
        ("Wget/1.21.4", "wget"),
        ("python-requests/2.31.0", "python-requests"),
        ("Go-http-client/1.1", "go-http-client"),
        ("Scrapy/2.11.0 (+https://scrapy.org)", "scrapy"),
        ("SomeRandomCrawler/0.1", "crawler"),
    ],
)
def test_generic_automation_is_medium(ua, name):
    c = classify_user_agent(ua, "/")
    assert c.tier == UserAgentTier.AUTOMATION
    assert c.signature == name
    assert c.finding.category == EventCategory.SUSPICIOUS_AUTOMATION_USER_AGENT
    assert c.finding.severity == Severity.MEDIUM


def test_ordinary_browser_raises_nothing():
    c = classify_user_agent(BROWSER, "/checkout")
    assert c.tier == UserAgentTier.ORDINARY
    assert c.finding is None


def test_allowlist_wins_over_later_tiers():
    # contains both an allowlisted crawler and a scanner token
    c = classify_user_agent("Googlebot/2.1 sqlmap", "/")
    assert c.tier == UserAgentTier.LEGITIMATE


def test_scanner_wins_over_automation():
    c = classify_user_agent("python-requests/2.31 nuclei", "/")
    assert c.tier == UserAgentTier.SCANNER
    assert c.signature == "nuclei"


def test_detail_is_sanitized():
    c = classify_user_agent("curl/8.0\r\nX-Injected: 1", "/")
    assert "\n" not in c.finding.detail
    assert "[NEWLINE]" in c.finding.detail


def test_extended_registry_recognizes_custom_tokens():
    reg = DEFAULT_REGISTRY.extend(ua_allow=["acme-monitor"], ua_scanner=["EvilScan"])
    assert classify_user_agent("acme-monitor/1.0 curl/8", "/", reg).tier == UserAgentTier.LEGITIMATE
    assert classify_user_agent("evilscan/2", "/", reg).tier == UserAgentTier.SCANNER
