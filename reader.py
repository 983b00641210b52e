from __future__ import annotations


class Reader:
    """A registered person, identified by phone number, who may borrow books."""

    def __init__(self, phone: str, first_name: str, last_name: str, birth_date: str | None = None,
                 registration_date: str | None = None) -> None:
        self.phone = phone.strip()
        self.first_name = first_name.strip()
        self.last_name = last_name.strip()
        self.birth_date = birth_date
        self.registration_date = registration_date

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.last_name} {self.first_name} ({self.phone})"

    def to_dict(self) -> dict:
        return {
            "phone": self.phone,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "birth_date": self.birth_date,
            "registration_date": self.registration_date,
        }

    @staticmethod
    def from_dict(data: dict) -> "Reader":
        return Reader(
            phone=data["phone"],
            first_name=data["first_name"],
            last_name=data["last_name"],
            birth_date=data.get("birth_date"),
            registration_date=data.get("registration_date"),
        )
