"""Custom exception classes for the API."""


class ReviewNotFoundError(Exception):
    """Raised when a review id is unknown (or its session expired)."""

    def __init__(self, review_id: str):
        self.review_id = review_id
        super().__init__(f"Review with ID '{review_id}' not found")


class PersonaSetNotFoundError(Exception):
    """Raised when a persona set id is not one of the built-in sets."""

    def __init__(self, set_id: str):
        self.set_id = set_id
        super().__init__(f"Persona set '{set_id}' not found")
