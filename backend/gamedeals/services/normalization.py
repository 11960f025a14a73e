import re


class TitleNormalizer:
    """
    Normalizes game titles so search results from different stores can be
    compared. Strips trademarks, edition names and punctuation.
    """

    # Filler words that stores like to add to titles
    STOP_WORDS = [
        "game of the year",
        "director's cut",
        "complete edition",
        "edition",
        "premium",
        "deluxe",
        "standard",
        "ultimate",
        "goty",
        "pc",
    ]

    @classmethod
    def normalize(cls, raw_title: str) -> str:
        title = raw_title.lower()

        title = re.sub(r"[™®©]", "", title)

        for word in cls.STOP_WORDS:
            title = re.sub(rf"\b{re.escape(word)}\b", "", title)

        title = re.sub(r"[^a-z0-9\s]", " ", title)
        title = re.sub(r"\s+", " ", title).strip()

        return title


def titles_match(a: str | None, b: str | None) -> bool:
    if not a or not b:
        return False
    na, nb = TitleNormalizer.normalize(a), TitleNormalizer.normalize(b)
    if not na or not nb:
        return False
    return na == nb or na in nb or nb in na
