from datetime import datetime, timezone
from sqlalchemy import CheckConstraint
from werkzeug.security import generate_password_hash, check_password_hash
from feedback_tracker.extensions import db

# Keep simple text+CHECK for evolvable roles (no DB enum migration pain)
ROLE_USER = "user"
ROLE_ADMIN = "admin"
ROLE_CHOICES = (ROLE_USER, ROLE_ADMIN)


def _utcnow():
    return datetime.now(timezone.utc)


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    # Case-sensitive as stored; uniqueness enforced here and in create_user()
    email = db.Column(db.String(255), nullable=False, unique=True)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(20), nullable=False, default=ROLE_USER, server_default=ROLE_USER)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        CheckConstraint("role IN ('user','admin')", name="ck_users_role_valid"),
    )

    # helpers
    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role}>"
