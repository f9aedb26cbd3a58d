from unittest.mock import patch

import pytest

from cupcake_store.models.review import Review
from cupcake_store.services.errors import ReviewNotAllowedError, ValidationError
from cupcake_store.services.reviews import (
    REVIEW_NOT_ALLOWED_MESSAGE,
    can_review,
    create_review,
    list_product_reviews,
)
from tests.fixtures_db import add_order, add_product, add_review, add_user, build_session


def _build_catalog():
    db = build_session()
    buyer = add_user(db, "sub-buyer", email="buyer@example.com", first_name="Ana")
    stranger = add_user(db, "sub-stranger", email="stranger@example.com")
    product = add_product(db)
    return db, buyer, stranger, product


def test_can_review_requires_purchase():
    db, _buyer, stranger, product = _build_catalog()

    assert can_review(db, stranger.id, product.id) is False


def test_can_review_counts_any_order_status():
    db, buyer, _stranger, product = _build_catalog()
    add_order(db, buyer.id, product, status="pending")

    assert can_review(db, buyer.id, product.id) is True


def test_can_review_false_after_review_exists():
    db, buyer, _stranger, product = _build_catalog()
    add_order(db, buyer.id, product, status="delivered")
    add_review(db, buyer.id, product, rating=5)

    assert can_review(db, buyer.id, product.id) is False


def test_can_review_false_for_missing_identifiers():
    db, _buyer, _stranger, product = _build_catalog()

    assert can_review(db, None, product.id) is False
    assert can_review(db, "sub-buyer", None) is False


def test_create_review_rejects_non_buyer():
    db, _buyer, stranger, product = _build_catalog()

    with pytest.raises(ReviewNotAllowedError) as exc:
        create_review(db, user_id=stranger.id, product_id=product.id, rating=4)

    assert exc.value.message == REVIEW_NOT_ALLOWED_MESSAGE
    assert db.query(Review).count() == 0


def test_create_review_only_once_per_product():
    db, buyer, _stranger, product = _build_catalog()
    add_order(db, buyer.id, product)

    review = create_review(db, user_id=buyer.id, product_id=product.id, rating=5, comment="  Delicioso  ")

    assert review.comment == "Delicioso"
    with pytest.raises(ReviewNotAllowedError):
        create_review(db, user_id=buyer.id, product_id=product.id, rating=3)
    assert db.query(Review).count() == 1


def test_create_review_rejects_rating_out_of_range():
    db, buyer, _stranger, product = _build_catalog()
    add_order(db, buyer.id, product)

    with pytest.raises(ValidationError):
        create_review(db, user_id=buyer.id, product_id=product.id, rating=0)
    with pytest.raises(ValidationError):
        create_review(db, user_id=buyer.id, product_id=product.id, rating=6)


def test_concurrent_review_is_blocked_by_unique_constraint():
    db, buyer, _stranger, product = _build_catalog()
    add_order(db, buyer.id, product)
    add_review(db, buyer.id, product, rating=4)

    # simula a segunda submissão que passou pela checagem antes da primeira gravar
    with patch("cupcake_store.services.reviews.can_review", return_value=True):
        with pytest.raises(ReviewNotAllowedError):
            create_review(db, user_id=buyer.id, product_id=product.id, rating=2)

    assert db.query(Review).count() == 1


def test_list_product_reviews_newest_first_with_author():
    db, buyer, stranger, product = _build_catalog()
    add_review(db, buyer.id, product, rating=5)
    add_review(db, stranger.id, product, rating=3)

    reviews = list_product_reviews(db, product.id)

    assert [review.user_id for review in reviews] == [stranger.id, buyer.id]
    assert reviews[1].user.first_name == "Ana"
