"""API routers for the after-school hub."""

from afterschool.routers import auth, behavior, homework, staff, students, tiers  # noqa: F401
