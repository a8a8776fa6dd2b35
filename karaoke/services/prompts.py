"""Karaoke options and the LLM prompt."""

ERAS = [
    "Stone Age",
    "Ancient Egypt",
    "Sumer",
    "Maya",
    "Aztec Empire",
    "Middle Ages",
]

GENRES = [
    "Pop",
    "Rock",
    "Ballad",
    "Reggae",
    "Rap",
    "Opera",
]

FRIENDSHIP_SCORE_MIN = -50
FRIENDSHIP_SCORE_MAX = 50

_KARAOKE_PROMPT = """\
You are a comedic songwriter and a slightly unreliable historian.

A cat named "{cat_name}" and a parrot named "{parrot_name}" perform a karaoke
duet in the era of {era}, in the {genre} genre.

Write:
- a short song: one verse and one chorus, full of era-appropriate details and
  jokes about the cat and the parrot,
- a one-sentence description of the duet's vocal style,
- two or three sentences of pseudo-historical lore about the performance,
- a friendship score between {score_min} and {score_max} describing how well
  the two got along on stage, with a one-sentence reason.

Respond with a single JSON object and nothing else, in exactly this shape:
{{
  "song": {{"verse": "...", "chorus": "..."}},
  "vocal_style": "...",
  "lore": "...",
  "friendship": {{"score": 0, "reason": "..."}}
}}
"""


def build_karaoke_prompt(cat_name: str, parrot_name: str, era: str, genre: str) -> str:
    return _KARAOKE_PROMPT.format(
        cat_name=cat_name,
        parrot_name=parrot_name,
        era=era,
        genre=genre,
        score_min=FRIENDSHIP_SCORE_MIN,
        score_max=FRIENDSHIP_SCORE_MAX,
    )
