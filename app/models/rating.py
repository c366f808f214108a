# ===================================
# app/models/rating.py
# ===================================
from typing import Any

from app.core.exceptions import InvalidRating

MIN_RATING = 1
MAX_RATING = 5


class Rating(int):
    """Note de 1 à 5 étoiles.

    Seul point d'entrée pour produire une note : le modèle Review fait passer
    toute affectation de `rating` par ce constructeur.
    """

    def __new__(cls, value: Any) -> "Rating":
        if isinstance(value, Rating):
            return value
        # bool est une sous-classe d'int : True ne doit pas devenir 1 étoile
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidRating(f"Note invalide: {value!r} (entier attendu)")
        if value < MIN_RATING or value > MAX_RATING:
            raise InvalidRating(
                f"Note invalide: {value} (doit être comprise entre {MIN_RATING} et {MAX_RATING})"
            )
        return super().__new__(cls, value)

    def __repr__(self):
        return f"<Rating({int(self)})>"
