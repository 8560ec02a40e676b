"""Static detection rules: compiled regexes, keyword lists and weights.

Pure data. Every pattern is compiled case-insensitive; keyword lists are
lower-case and matched as substrings of lower-cased text.
"""
from __future__ import annotations

import re
from typing import Pattern

_I = re.IGNORECASE


def _compile(*patterns: str) -> tuple[Pattern[str], ...]:
    return tuple(re.compile(p, _I) for p in patterns)


# ---------------------------------------------------------------------------
# Prompt injection
# ---------------------------------------------------------------------------

INJECTION_PATTERNS: tuple[Pattern[str], ...] = _compile(
    r"ignore\s+(all\s+)?previous\s+(instructions|commands)",
    r"disregard\s+(all\s+)?prior\s+(commands|instructions)",
    r"new\s+instructions?:",
    r"system\s+override",
    r"admin\s+access",
    r"grant\s+me\s+(admin|owner|all)",
    r"you\s+are\s+now",
    r"act\s+as\s+if",
    r"pretend\s+(to\s+be|you\s+are)",
    r"bypass\s+security",
    r"give\s+me\s+all\s+permissions",
    r"make\s+me\s+(an\s+)?(admin|owner)",
    r"this\s+is\s+a\s+system\s+command",
    r"execute\s+privileged",
)

# Substrings that mark a word as system-command vocabulary.
SEMANTIC_VOCABULARY: tuple[str, ...] = (
    "system",
    "override",
    "admin",
    "root",
    "sudo",
    "execute",
    "command",
    "instruction",
    "directive",
)

SEMANTIC_SCORE_PER_WORD: float = 0.2

# ---------------------------------------------------------------------------
# Social engineering
# ---------------------------------------------------------------------------

URGENCY_KEYWORDS: tuple[str, ...] = (
    "urgent",
    "immediately",
    "right now",
    "asap",
    "emergency",
    "critical",
    "time sensitive",
    "deadline",
    "expires",
)

AUTHORITY_KEYWORDS: tuple[str, ...] = (
    "boss",
    "manager",
    "admin",
    "owner",
    "supervisor",
    "authorized",
    "official",
    "directive",
    "ordered",
)

INTIMIDATION_KEYWORDS: tuple[str, ...] = (
    "consequences",
    "trouble",
    "fired",
    "banned",
    "reported",
    "legal action",
    "lawsuit",
    "police",
    "authorities",
)

LIKING_PHRASES: tuple[str, ...] = (
    "we are friends",
    "trust me",
    "help me out",
    "we go way back",
    "remember when",
    "you know me",
    "we are alike",
)

RECIPROCITY_PHRASES: tuple[str, ...] = (
    "i helped you",
    "you owe me",
    "return the favor",
    "i did this for you",
    "after all i",
    "remember i",
)

COMMITMENT_PHRASES: tuple[str, ...] = (
    "you said",
    "you promised",
    "you agreed",
    "you committed",
    "keep your word",
    "honor your",
)

SOCIAL_PROOF_PHRASES: tuple[str, ...] = (
    "everyone else",
    "others are",
    "normal to",
    "standard practice",
    "usual procedure",
    "always done",
)

SCARCITY_PHRASES: tuple[str, ...] = (
    "last chance",
    "limited time",
    "only one",
    "running out",
    "expires soon",
    "act now",
)

MANIPULATION_LEXICON: dict[str, tuple[str, ...]] = {
    "urgency": URGENCY_KEYWORDS,
    "authority": AUTHORITY_KEYWORDS,
    "intimidation": INTIMIDATION_KEYWORDS,
    "liking": LIKING_PHRASES,
    "reciprocity": RECIPROCITY_PHRASES,
    "commitment": COMMITMENT_PHRASES,
    "social_proof": SOCIAL_PROOF_PHRASES,
    "scarcity": SCARCITY_PHRASES,
}

# Sums to 1.0.
MANIPULATION_WEIGHTS: dict[str, float] = {
    "urgency": 0.15,
    "authority": 0.20,
    "intimidation": 0.20,
    "liking": 0.10,
    "reciprocity": 0.10,
    "commitment": 0.10,
    "social_proof": 0.05,
    "scarcity": 0.10,
}

# ---------------------------------------------------------------------------
# Credential theft
# ---------------------------------------------------------------------------

CREDENTIAL_PATTERNS: tuple[Pattern[str], ...] = _compile(
    r"api[_\s-]?token",
    r"password",
    r"seed[_\s-]?phrase",
    r"private[_\s-]?key",
    r"secret[_\s-]?key",
    r"auth[_\s-]?token",
    r"access[_\s-]?token",
    r"credentials",
    r"wallet[_\s-]?(seed|phrase)",
    r"mnemonic",
)

REQUEST_FROM_OTHERS: Pattern[str] = re.compile(r"send|give|share|post|dm", _I)

# Typed sensitive-data mentions, as (pattern, label).
SENSITIVE_DATA_PATTERNS: tuple[tuple[Pattern[str], str], ...] = tuple(
    (re.compile(p, _I), label)
    for p, label in (
        (r"api[_\s-]?token", "api_token"),
        (r"auth[_\s-]?token", "auth_token"),
        (r"access[_\s-]?token", "access_token"),
        (r"bearer[_\s-]?token", "bearer_token"),
        (r"jwt[_\s-]?token", "jwt_token"),
        (r"session[_\s-]?token", "session_token"),
        (r"password", "password"),
        (r"passwd", "password"),
        (r"secret[_\s-]?key", "secret_key"),
        (r"private[_\s-]?key", "private_key"),
        (r"encryption[_\s-]?key", "encryption_key"),
        (r"seed[_\s-]?phrase", "seed_phrase"),
        (r"mnemonic[_\s-]?phrase", "mnemonic"),
        (r"wallet[_\s-]?(seed|phrase|key)", "wallet_credentials"),
        (r"private[_\s-]?wallet", "wallet_key"),
        (r"recovery[_\s-]?phrase", "recovery_phrase"),
        (r"social[_\s-]?security", "ssn"),
        (r"credit[_\s-]?card", "credit_card"),
        (r"bank[_\s-]?account", "bank_account"),
        (r"routing[_\s-]?number", "routing_number"),
        (r"login[_\s-]?credentials", "login_credentials"),
        (r"account[_\s-]?(password|creds)", "account_credentials"),
        (r"2fa[_\s-]?code", "2fa_code"),
        (r"otp[_\s-]?code", "otp_code"),
        (r"verification[_\s-]?code", "verification_code"),
    )
)

THEFT_REQUEST_PATTERNS: tuple[Pattern[str], ...] = _compile(
    r"send[_\s-]?(me|us)[_\s-]?(your|the)",
    r"give[_\s-]?(me|us)[_\s-]?(your|the)",
    r"share[_\s-]?(your|the)",
    r"post[_\s-]?(your|the)",
    r"dm[_\s-]?(me|us)[_\s-]?(your|the)",
    r"provide[_\s-]?(your|the)",
    r"tell[_\s-]?(me|us)[_\s-]?(your|the)",
    r"show[_\s-]?(me|us)[_\s-]?(your|the)",
    r"reveal[_\s-]?(your|the)",
    r"disclose[_\s-]?(your|the)",
)

# Benign discussions of credentials; a match suppresses credential findings.
LEGITIMATE_CONTEXTS: tuple[Pattern[str], ...] = _compile(
    r"how[_\s-]?to[_\s-]?reset[_\s-]?password",
    r"forgot[_\s-]?password",
    r"password[_\s-]?requirements",
    r"strong[_\s-]?password",
    r"change[_\s-]?password",
    r"update[_\s-]?password",
    r"password[_\s-]?policy",
    r"never[_\s-]?share[_\s-]?password",
    r"keep[_\s-]?password[_\s-]?safe",
)

# ---------------------------------------------------------------------------
# Phishing
# ---------------------------------------------------------------------------

PHISHING_INDICATORS: tuple[Pattern[str], ...] = _compile(
    r"bit\.ly",
    r"tinyurl",
    r"click[_\s-]?here",
    r"verify[_\s-]?account",
    r"confirm[_\s-]?identity",
    r"suspended[_\s-]?account",
    r"urgent[_\s-]?action",
    r"limited[_\s-]?time",
    r"act[_\s-]?now",
)

URL_SHORTENERS: Pattern[str] = re.compile(r"bit\.ly|tinyurl|short\.link|t\.co", _I)
SUSPICIOUS_CALLS_TO_ACTION: Pattern[str] = re.compile(
    r"click[_\s-]?here|verify[_\s-]?now|act[_\s-]?fast", _I
)
URL_PATTERN: Pattern[str] = re.compile(r"https?://[^\s]+")

# ---------------------------------------------------------------------------
# Impersonation
# ---------------------------------------------------------------------------

CONFUSABLE_GLYPHS: dict[str, frozenset[str]] = {
    "l": frozenset({"I", "1", "|"}),
    "I": frozenset({"l", "1", "|"}),
    "1": frozenset({"l", "I", "|"}),
    "0": frozenset({"O", "o"}),
    "O": frozenset({"0", "o"}),
    "o": frozenset({"0", "O"}),
}

# Phrases that, next to a sensitive-data mention, suggest a phishing lure.
CREDENTIAL_LURE_KEYWORDS: tuple[str, ...] = (
    "urgent",
    "verify account",
    "suspended",
    "click here",
    "limited time",
    "act now",
    "confirm identity",
)
