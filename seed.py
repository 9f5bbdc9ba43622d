"""
Idempotent seed script.
Usage:
  python seed.py --reset   # drop and recreate the DB, then add demo data
  python seed.py           # add missing demo data only

Demo teacher: demo_teacher / demo_password, sample assignment code DEMO01.
"""
import argparse
import logging

from app import create_app
from extensions import db
from models import Assignment, AssignmentStatus, Teacher, utcnow
from blueprints.auth.services import hash_password
from blueprints.assignments.services import recompute_active_count

log = logging.getLogger("seed")

DEMO_USERNAME = "demo_teacher"
DEMO_PASSWORD = "demo_password"
DEMO_CODE = "DEMO01"

DEMO_CONTENT = """Write a 500-word essay on the following topic:

"The Impact of Technology on Modern Education"

In your essay, consider the following aspects:
1. How technology has changed the way students learn
2. The benefits and challenges of digital learning tools
3. Your personal experience with technology in education
4. Future predictions for educational technology"""

DEMO_INSTRUCTIONS = ("Please read the prompt carefully and write a thoughtful, well-structured essay. "
                     "You can save your work as a draft and return to continue writing at any time "
                     "before the deadline.")

def ensure_demo_teacher() -> Teacher:
    t = Teacher.query.filter_by(username=DEMO_USERNAME).first()
    if t:
        return t
    t = Teacher(username=DEMO_USERNAME, password_hash=hash_password(DEMO_PASSWORD),
                failed_attempts=0, active_sessions_count=0)
    db.session.add(t)
    db.session.flush()
    log.info("created demo teacher %s", DEMO_USERNAME)
    return t

def ensure_demo_assignment(teacher: Teacher) -> Assignment:
    a = Assignment.query.filter_by(assignment_code=DEMO_CODE).first()
    if a:
        return a
    now = utcnow()
    a = Assignment(
        teacher_id=teacher.id,
        title="Sample Essay Assignment",
        content=DEMO_CONTENT,
        instructions=DEMO_INSTRUCTIONS,
        assignment_code=DEMO_CODE,
        status=AssignmentStatus.ACTIVE,
        created_at=now,
        activated_at=now,
        student_count=0,
        max_students=30,
    )
    db.session.add(a)
    log.info("created sample assignment %s", DEMO_CODE)
    return a

def seed(reset: bool = False) -> None:
    if reset:
        db.drop_all()
    db.create_all()
    teacher = ensure_demo_teacher()
    ensure_demo_assignment(teacher)
    recompute_active_count(teacher)
    db.session.commit()

def main():
    parser = argparse.ArgumentParser(description="Seed demo data")
    parser.add_argument("--reset", action="store_true", help="drop and recreate all tables first")
    parser.add_argument("--config", default=None, help="config name (dev|prod)")
    args = parser.parse_args()

    app = create_app(args.config)
    with app.app_context():
        seed(reset=args.reset)
    print(f"Seed done. Teacher: {DEMO_USERNAME} / {DEMO_PASSWORD}, assignment code: {DEMO_CODE}")

if __name__ == "__main__":
    main()
