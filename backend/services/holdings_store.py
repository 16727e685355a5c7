"""Holdings store - keyed storage of positions by (user, symbol)."""

import logging
from decimal import Decimal

from sqlalchemy.orm import Session

from models import Holding, User
from services.exceptions import AuthorizationError, NoSuchHoldingError, NotFoundError
from services.ledger_types import HoldingSnapshot
from utils.ticker import normalize_symbol

logger = logging.getLogger(__name__)


class HoldingsStore:
    """Reads and writes Holding rows.

    Symbol lookups are case-insensitive (symbols are normalized before
    every query).  Apart from the unique (user, symbol) key, no business
    rules are enforced here; all writes come from ``TransactionProcessor``.
    """

    def get(self, db: Session, user_id: str, symbol: str) -> HoldingSnapshot | None:
        """Return the position in ``symbol``, or None if not held."""
        row = self._load(db, user_id, symbol)
        return HoldingSnapshot.from_model(row) if row is not None else None

    def require(self, db: Session, user_id: str, symbol: str) -> HoldingSnapshot:
        """Return the position in ``symbol``.

        Raises:
            NoSuchHoldingError: If the user holds no position in ``symbol``.
        """
        holding = self.get(db, user_id, symbol)
        if holding is None:
            raise NoSuchHoldingError(
                f"No holdings found for symbol: {normalize_symbol(symbol)}",
                user_id=user_id,
            )
        return holding

    def list_for_user(self, db: Session, user_id: str) -> list[HoldingSnapshot]:
        """All open positions for ``user_id`` ordered by symbol."""
        rows = (
            db.query(Holding)
            .filter(Holding.user_id == user_id)
            .order_by(Holding.symbol)
            .all()
        )
        return [HoldingSnapshot.from_model(row) for row in rows]

    def list_shared(self, db: Session, viewer_id: str, owner_id: str) -> list[HoldingSnapshot]:
        """Read-only view of another user's portfolio.

        Allowed when the owner has ``share_portfolio`` enabled, or when the
        viewer is the owner.

        Raises:
            NotFoundError: If ``owner_id`` does not exist.
            AuthorizationError: If the owner has disabled sharing.
        """
        owner = db.query(User).filter(User.id == owner_id).first()
        if owner is None:
            raise NotFoundError(f"User {owner_id} not found", user_id=viewer_id)
        if viewer_id != owner_id and not owner.share_portfolio:
            logger.info("Shared view of %s denied to %s", owner_id, viewer_id)
            raise AuthorizationError(
                f"User {owner_id} does not share their portfolio",
                user_id=viewer_id,
                operation="list_shared",
            )
        return self.list_for_user(db, owner_id)

    def save_position(
        self,
        db: Session,
        user_id: str,
        symbol: str,
        quantity: Decimal,
        average_cost: Decimal,
    ) -> HoldingSnapshot | None:
        """Write the position for (user, symbol) and flush.

        Inserts a row for a new symbol, updates an existing one, and deletes
        the row when ``quantity`` is zero.  Returns the new snapshot, or
        None when the position was closed.
        """
        symbol = normalize_symbol(symbol)
        row = self._load(db, user_id, symbol)

        if quantity == 0:
            if row is not None:
                db.delete(row)
                db.flush()
            return None

        if row is None:
            row = Holding(
                user_id=user_id,
                symbol=symbol,
                quantity=quantity,
                average_cost=average_cost,
            )
            db.add(row)
        else:
            row.quantity = quantity
            row.average_cost = average_cost
        db.flush()
        return HoldingSnapshot(
            user_id=user_id,
            symbol=symbol,
            quantity=quantity,
            average_cost=average_cost,
            updated_at=row.updated_at,
        )

    @staticmethod
    def _load(db: Session, user_id: str, symbol: str) -> Holding | None:
        return (
            db.query(Holding)
            .filter(Holding.user_id == user_id, Holding.symbol == normalize_symbol(symbol))
            .first()
        )
