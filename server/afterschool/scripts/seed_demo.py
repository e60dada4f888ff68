from __future__ import annotations

from sqlalchemy.orm import Session

from afterschool.auth.security import hash_password
from afterschool.core.db import Base, SessionLocal, engine
from afterschool.models.staff import StaffProfile
from afterschool.models.student import DEFAULT_TIER, Student
from afterschool.models.user import User

DEMO_PASSWORD = "Demo123!"

DEMO_USERS = [
    ("admin", "Admin User", "admin"),
    ("manager", "Site Manager", "staff"),
    ("ydl", "Youth Development Lead", "staff"),
    ("coach1", "Coach Member", "staff"),
    ("second", "Second In Command", "staff"),
    ("parent1", "Parent User", "parent"),
]

DEMO_STAFF = {
    "manager": ("Site Manager", "site-manager", []),
    "ydl": ("Youth Development Lead", "youth-development-lead", []),
    "coach1": ("Program Coordinator", "coach", ["behavior-management"]),
    "second": ("Second In Command", "second-in-command", []),
}

DEMO_STUDENTS = [
    {"first_name": "Student", "last_name": "One", "grade": "3", "parent": "parent1"},
    {"first_name": "Student", "last_name": "Two", "grade": "5", "parent": "parent1"},
]


def ensure_user(db: Session, username: str, full_name: str, role: str) -> User:
    user = db.query(User).filter_by(username=username).first()
    if user is None:
        user = User(
            username=username,
            full_name=full_name,
            hashed_password=hash_password(DEMO_PASSWORD),
            role=role,
            is_active=True,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
    return user


def ensure_staff_profile(db: Session, user: User, title: str, staff_role: str, permissions: list[str]) -> StaffProfile:
    profile = db.query(StaffProfile).filter_by(user_id=user.id).first()
    if profile is None:
        profile = StaffProfile(user_id=user.id, title=title, staff_role=staff_role, permissions=permissions)
        db.add(profile)
        db.commit()
        db.refresh(profile)
    return profile


def ensure_students(db: Session, users: dict[str, User]) -> None:
    for data in DEMO_STUDENTS:
        parent = users[data["parent"]]
        exists = (
            db.query(Student)
            .filter_by(first_name=data["first_name"], last_name=data["last_name"], parent_id=parent.id)
            .first()
        )
        if exists:
            continue
        db.add(
            Student(
                first_name=data["first_name"],
                last_name=data["last_name"],
                grade=data["grade"],
                parent_id=parent.id,
                current_tier=DEFAULT_TIER,
            )
        )
    db.commit()


def main() -> None:
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        users: dict[str, User] = {}
        for username, full_name, role in DEMO_USERS:
            users[username] = ensure_user(db, username, full_name, role)
        for username, (title, staff_role, permissions) in DEMO_STAFF.items():
            ensure_staff_profile(db, users[username], title, staff_role, permissions)
        ensure_students(db, users)
    finally:
        db.close()


if __name__ == "__main__":
    main()
