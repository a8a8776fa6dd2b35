"""Cat & Parrot Ancient Karaoke.

A small API where a cat and a parrot sing together across history:
users submit two names, an era and a genre, an LLM writes the song and
judges how well the duo got along, and the friendship scores feed a
per-user leaderboard.

Modules:
    - services/score_service: score ledger writes (idempotent upsert)
    - services/leaderboard_service: per-user ranking and standings
    - services/generation_service: generation history storage and queries
    - services/karaoke_service: the generate -> save -> score workflow
    - llm_client: chat-completion client used to write the songs
"""

__version__ = "0.1.0"
