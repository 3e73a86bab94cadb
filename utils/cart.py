"""
Storefront cart kept in the signed session cookie.

Maps food item id -> quantity. Quantities are always positive: setting a
quantity to zero or below drops the entry.
"""

SESSION_KEY = "cart"


class Cart:
    def __init__(self, lines=None):
        self._lines = {}
        for food_id, qty in (lines or {}).items():
            self.set_quantity(food_id, qty)

    @classmethod
    def from_session(cls, session):
        return cls(session.get(SESSION_KEY, {}))

    def save(self, session):
        # JSON session keys must be strings
        session[SESSION_KEY] = {str(k): v for k, v in self._lines.items()}
        session.modified = True

    def add(self, food_id):
        food_id = int(food_id)
        self._lines[food_id] = self._lines.get(food_id, 0) + 1
        return self._lines[food_id]

    def set_quantity(self, food_id, quantity):
        food_id = int(food_id)
        quantity = int(quantity)
        if quantity > 0:
            self._lines[food_id] = quantity
        else:
            self._lines.pop(food_id, None)

    def remove(self, food_id):
        self._lines.pop(int(food_id), None)

    def clear(self):
        self._lines.clear()

    def quantity(self, food_id):
        return self._lines.get(int(food_id), 0)

    def lines(self):
        return list(self._lines.items())

    def is_empty(self):
        return not self._lines

    def __contains__(self, food_id):
        return int(food_id) in self._lines

    def count(self):
        return sum(self._lines.values())

    def as_order_items(self):
        return [{"foodItemId": food_id, "quantity": qty} for food_id, qty in self._lines.items()]
