import random
import uuid

from faker import Faker

from grievance_portal.database import init_engine, init_schema
from grievance_portal.lifecycle import transition
from grievance_portal.rbac import register_identity
from grievance_portal.submission import submit_grievance
from grievance_portal.taxonomy import SUBCATEGORIES_BY_CATEGORY, allowed_next

# --------------------------------------------------------------------
# CONFIG
# --------------------------------------------------------------------
NUM_STUDENTS = 12
NUM_FACULTY = 4
NUM_ADMINS = 1

# grievances per submitter (min, max)
PER_USER = (0, 4)

# chance that the admin moves a grievance one more step forward
ADVANCE_PROBABILITY = 0.5

DEPARTMENTS = ["CSE", "ECE", "MECH", "CIVIL", "EEE", "IT"]

# --------------------------------------------------------------------
# SETUP
# --------------------------------------------------------------------
fake = Faker()
random.seed(42)
Faker.seed(42)

engine = init_engine()
init_schema(engine)


def make_users(role, count, prefix):
    users = []
    for i in range(count):
        identity = register_identity(
            engine,
            str(uuid.uuid4()),
            role=role,
            full_name=fake.name(),
            user_id_number=f"{prefix}{fake.random_number(digits=5, fix_len=True)}",
            department=random.choice(DEPARTMENTS),
        )
        users.append(identity)
    return users


def fake_details(category, subcategory):
    if (category, subcategory) == ("Facility", "WiFi"):
        return {
            "building": random.choice(["Main Block", "Science Block", "Library Block"]),
            "floor": random.choice(["Ground", "1st", "2nd", "3rd"]),
            "location": f"Room {random.randint(100, 450)}",
        }
    if (category, subcategory) == ("Academic", "Teaching Quality"):
        return {
            "subjectName": fake.bs().title(),
            "facultyName": fake.name(),
            "issueType": random.choice(["pace", "methodology", "doubts"]),
        }
    if (category, subcategory) == ("Examination", "Marks Related"):
        return {
            "subject": fake.word().title(),
            "courseCode": f"CS{random.randint(100, 499)}",
            "examName": random.choice(["Mid-Term 1", "Mid-Term 2", "End Semester"]),
            "examIssueType": random.choice(["error-total", "not-graded", "wrong-marks"]),
        }
    return {}


# --------------------------------------------------------------------
# SEED
# --------------------------------------------------------------------
students = make_users("student", NUM_STUDENTS, "STU")
faculty = make_users("faculty", NUM_FACULTY, "FAC")
admins = make_users("admin", NUM_ADMINS, "ADM")
admin = admins[0]

created = 0
advanced = 0
for user in students + faculty:
    for _ in range(random.randint(*PER_USER)):
        category = random.choice(list(SUBCATEGORIES_BY_CATEGORY))
        subcategory = random.choice(SUBCATEGORIES_BY_CATEGORY[category])
        grievance = submit_grievance(engine, user, {
            "title": fake.sentence(nb_words=6).rstrip("."),
            "description": fake.paragraph(nb_sentences=3),
            "category": category,
            "subcategory": subcategory,
            "details": fake_details(category, subcategory),
        })
        created += 1

        while allowed_next(grievance.status) and random.random() < ADVANCE_PROBABILITY:
            grievance = transition(engine, grievance, allowed_next(grievance.status)[0], admin)
            advanced += 1

print(f"Seeded {len(students)} students, {len(faculty)} faculty, {len(admins)} admin(s).")
print(f"Created {created} grievances, applied {advanced} status transitions.")
print(f"Admin user id: {admin.user_id}")
