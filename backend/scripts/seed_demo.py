"""CLI script to fill the backend DB with a demo class.
Usage: python scripts/seed_demo.py [--days N] [--student-password PW]

Creates a demo student, a week of timetable entries starting today,
a couple of posts and surveys. Rows are created through the services so
the same validation applies as for the API. Running it twice adds a
second set of timetable/posts/surveys but reuses the demo accounts.
"""
import sys
import argparse
import pathlib
from datetime import time, timedelta
# Ensure `backend/` is on sys.path so `schoolhub` package imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from sqlmodel import Session
from schoolhub.database import engine, create_db_and_tables
from schoolhub import models, repositories, services
from schoolhub.utils import dates

DEMO_STUDENT = "hocsinh@school.vn"
LESSONS = [
    (time(7, 30), "Toán", "A101"),
    (time(9, 15), "Ngữ văn", "A102"),
    (time(13, 30), "Tiếng Anh", "B201"),
]


def _ensure_profile(session: Session, email: str, password: str, role: str, full_name: str) -> models.Profile:
    existing = repositories.ProfileRepository(session).get_by_email(email)
    if existing:
        return existing
    return services.AuthService(session).register(email, password, full_name=full_name, role=role)


def main(days: int = 5, student_password: str = "demo"):
    """Seed the configured database and print what was created."""
    create_db_and_tables()
    with Session(engine) as session:
        admin = _ensure_profile(session, "admin@school.vn", "admin", models.ROLE_ADMIN, "Quản trị viên")
        student = _ensure_profile(session, DEMO_STUDENT, student_password, models.ROLE_STUDENT, "Nguyễn Văn An")
        print(f'Accounts: admin={admin.email} student={student.email}')

        timetable = services.TimetableService(session)
        start = dates.today()
        created = 0
        for offset in range(days):
            for lesson_time, subject, room in LESSONS:
                timetable.create(admin.id, start + timedelta(days=offset), lesson_time, subject, room)
                created += 1
        print(f'Timetable entries created: {created}')

        posts = services.PostService(session)
        posts.create(admin.id, "Lịch thi học kỳ", "Lịch thi học kỳ I sẽ được công bố vào tuần sau. Các em chú ý theo dõi.")
        posts.create(admin.id, "Họp phụ huynh", "Buổi họp phụ huynh diễn ra vào sáng Chủ nhật tại hội trường.")
        print('Posts created: 2')

        surveys = services.SurveyService(session)
        surveys.create(admin.id, "Em muốn đi dã ngoại ở đâu?", models.KIND_MULTIPLE_CHOICE, ["Đà Lạt", "Vũng Tàu", "Cần Thơ"])
        surveys.create(admin.id, "Em có góp ý gì cho lớp?", models.KIND_TEXT)
        print('Surveys created: 2')


if __name__ == '__main__':
    parser = argparse.ArgumentParser()
    parser.add_argument('--days', type=int, default=5, help='Number of days of timetable to create')
    parser.add_argument('--student-password', default='demo', help='Password for the demo student account')
    args = parser.parse_args()
    main(days=args.days, student_password=args.student_password)
