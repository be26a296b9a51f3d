import sys, pathlib
sys.path.append(str(pathlib.Path(__file__).resolve().parents[1] / "backend"))

from redis.exceptions import RedisError
from sqlalchemy import func, select, text
from marketplace.database import SessionLocal
from marketplace.models import Bookings, Orders, Tenants
from marketplace.redis_client import redis_client


def main():
    db = SessionLocal()
    try:
        print("DB OK:", db.execute(text("SELECT 1")).scalar())
        for model in (Tenants, Bookings, Orders):
            count = db.execute(select(func.count()).select_from(model)).scalar()
            print(f"{model.__tablename__}:", count)
    finally:
        db.close()

    try:
        print("Redis OK:", redis_client.ping())
    except RedisError as e:
        print("Redis FAILED:", e)


if __name__ == "__main__":
    main()
