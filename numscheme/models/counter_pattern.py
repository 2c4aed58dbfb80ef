from sqlalchemy import BigInteger, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from numscheme.db.base import Base


class SchemeCounterPattern(Base):
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # Numbering scheme the counter belongs to.
    scheme_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    # Literal text issued before / after the counter, e.g. 'AB-' and ''.
    prefix: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    suffix: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    # Next counter value the scheme would issue for this prefix/suffix pair.
    next_counter: Mapped[int] = mapped_column(BigInteger, nullable=False)
    counter_length: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # One counter per literal combination within a scheme
    __table_args__ = (
        UniqueConstraint("scheme_id", "prefix", "suffix", name="uix_scheme_prefix_suffix"),
    )
