# reset_db.py
import sys
sys.path.insert(0, '.')

from chartjournal.database import engine, Base, SessionLocal
from chartjournal import crud, models, schemas  # noqa: F401 (registers tables)

DEMO_EMAIL = "demo@chartjournal.app"
DEMO_PASSWORD = "demo123"

# Drop and recreate every table
Base.metadata.drop_all(bind=engine)
Base.metadata.create_all(bind=engine)
print(f"✅ Recreated all tables on {engine.url}")

db = SessionLocal()
try:
    user = crud.create_user(db, schemas.UserCreate(email=DEMO_EMAIL, password=DEMO_PASSWORD, name="Demo Trader"))
    print("✅ Demo user created:")
    print(f"   Email: {DEMO_EMAIL}")
    print(f"   Password: {DEMO_PASSWORD}")
    print(f"   Starting capital: {user.initial_capital:,.2f}")
finally:
    db.close()

print("\n🎉 Database reset complete! Ready to run the app.")
