"""
Review Module - Service Layer
===============================
Review CRUD with ownership rules. Every change to a product's review set
recomputes that product's ratings_average / ratings_quantity before the
route commits, so both land in the same transaction.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from common.crud import CrudService
from common.exceptions import AuthorizationError, NotFoundError, ValidationError
from modules.auth.deps import has_role, STAFF
from modules.catalog.models import Product
from modules.review.models import Review
from modules.user.models import User


class ReviewService(CrudService):

    def __init__(self):
        super().__init__(Review, search_fields=("text",))

    def create_review(self, db: Session, user: User, product_id: int, ratings: float, text: Optional[str]) -> Review:
        if not db.get(Product, product_id):
            raise NotFoundError(f"No product found for ID: {product_id}")
        exists = db.query(Review.id).filter(
            Review.user_id == user.id, Review.product_id == product_id,
        ).first()
        if exists:
            raise ValidationError("You already created a review before")

        review = Review(user_id=user.id, product_id=product_id, ratings=ratings, text=text)
        db.add(review)
        db.flush()
        self.recalculate_product_ratings(db, product_id)
        return review

    def update_review(self, db: Session, user: User, review_id: int, data: Dict[str, Any]) -> Review:
        review = self.get_one(db, review_id)
        if review.user_id != user.id:
            raise AuthorizationError("You are not allowed to perform this action")

        for key in ("ratings", "text"):
            if key in data:
                setattr(review, key, data[key])
        db.flush()
        self.recalculate_product_ratings(db, review.product_id)
        return review

    def delete_review(self, db: Session, user: User, review_id: int):
        review = self.get_one(db, review_id)
        if review.user_id != user.id and not has_role(user, STAFF):
            raise AuthorizationError("You are not allowed to perform this action")

        product_id = review.product_id
        db.delete(review)
        db.flush()
        self.recalculate_product_ratings(db, product_id)

    def recalculate_product_ratings(self, db: Session, product_id: int):
        """Mean + count over the product's reviews; 0 / 0 when none remain."""
        avg_rating, count = db.query(
            func.avg(Review.ratings), func.count(Review.id),
        ).filter(Review.product_id == product_id).one()

        product = db.get(Product, product_id)
        if not product:
            return
        product.ratings_average = float(avg_rating) if count else 0
        product.ratings_quantity = count or 0
        db.flush()

    def serialize(self, obj: Review, fields: Optional[List[str]] = None) -> dict:
        data = super().serialize(obj, fields)
        if not fields and obj.user:
            data["user"] = {"id": obj.user.id, "name": obj.user.name}
        return data


# Singleton
review_service = ReviewService()
