import pytest

from app.core.exceptions import InvalidInput, InvalidRating
from app.models.rating import Rating, MIN_RATING, MAX_RATING
from app.models.review import ReviewSort


@pytest.mark.parametrize("value", range(MIN_RATING, MAX_RATING + 1))
def test_rating_accepts_one_to_five(value):
    assert int(Rating(value)) == value


@pytest.mark.parametrize("value", [-1, 0, 6, 100])
def test_rating_rejects_out_of_range(value):
    with pytest.raises(InvalidRating):
        Rating(value)


@pytest.mark.parametrize("value", [True, "4", 4.0, None])
def test_rating_rejects_non_integers(value):
    with pytest.raises(InvalidInput):
        Rating(value)


def test_invalid_rating_is_invalid_input():
    assert issubclass(InvalidRating, InvalidInput)
    assert InvalidRating("x").status_code == 400


def test_review_sort_falls_back_to_recent():
    assert ReviewSort.parse("rating_desc") is ReviewSort.RATING_DESC
    assert ReviewSort.parse(" UPVOTES ") is ReviewSort.UPVOTES
    assert ReviewSort.parse("bogus") is ReviewSort.RECENT
    assert ReviewSort.parse(None) is ReviewSort.RECENT
    assert ReviewSort.parse("") is ReviewSort.RECENT
