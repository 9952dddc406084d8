"""Per-locale blocked word lists for the local moderation filter.

The lists are intentionally small. They catch obvious terms without a
network round trip; the external classifier handles context and evasion.
Only English is populated; the other locales are placeholders.
"""

EN_WORDS: tuple[str, ...] = (
    "fuck",
    "fucking",
    "motherfucker",
    "shit",
    "bullshit",
    "bitch",
    "bastard",
    "asshole",
    "cunt",
    "dickhead",
    "cock",
    "pussy",
    "whore",
    "slut",
    "wanker",
    "twat",
    "faggot",
    "retard",
    "kys",
    "kill yourself",
)

JA_WORDS: tuple[str, ...] = ()
DE_WORDS: tuple[str, ...] = ()
FR_WORDS: tuple[str, ...] = ()
KO_WORDS: tuple[str, ...] = ()
ZH_WORDS: tuple[str, ...] = ()

PROFANITY_LISTS: dict[str, tuple[str, ...]] = {
    "en": EN_WORDS,
    "ja": JA_WORDS,
    "de": DE_WORDS,
    "fr": FR_WORDS,
    "ko": KO_WORDS,
    "zh": ZH_WORDS,
}
