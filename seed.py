"""
Idempotent seed-скрипт.
Запуск:
  python seed.py --reset         # дропнуть и пересоздать БД + каталог + демо-пользователи + текущая неделя
  python seed.py --catalog-only  # только каталог ингредиентов
  python seed.py                 # мягкое наполнение недостающих данных (idempotent)
"""
import argparse
from datetime import timedelta

from app import create_app
from extensions import db
from models import Ingredient, IngredientCategory, User

DEMO_INGREDIENTS = [
    # (code, name, category)
    ("PAN", "Pane casereccio", IngredientCategory.BREAD),
    ("FOC", "Focaccia", IngredientCategory.BREAD),
    ("PIA", "Piadina", IngredientCategory.BREAD),
    ("PRC", "Prosciutto crudo", IngredientCategory.MEAT),
    ("PRO", "Prosciutto cotto", IngredientCategory.MEAT),
    ("MOR", "Mortadella", IngredientCategory.MEAT),
    ("MOZ", "Mozzarella", IngredientCategory.CHEESE),
    ("STR", "Stracchino", IngredientCategory.CHEESE),
    ("POM", "Pomodoro", IngredientCategory.VEGETABLE),
    ("RUC", "Rucola", IngredientCategory.VEGETABLE),
    ("PES", "Pesto", IngredientCategory.SAUCE),
]

DEMO_USERS = [
    {"email": "admin@example.com", "nickname": "admin", "role": "ADMIN"},
    {"email": "user@example.com", "nickname": "user", "role": "USER"},
]


def get_or_create(model, defaults=None, **by):
    """Идемпотентное создание по уникальным ключам."""
    inst = db.session.query(model).filter_by(**by).first()
    if inst:
        return inst, False
    data = dict(defaults or {})
    data.update(by)
    inst = model(**data)
    db.session.add(inst)
    db.session.flush()
    return inst, True


# ---- сиды ----
def seed_catalog() -> int:
    created = 0
    for code, name, category in DEMO_INGREDIENTS:
        _, new = get_or_create(Ingredient, defaults={"name": name, "category": category.value,
                                                     "is_available": True}, code=code)
        created += new
    db.session.commit()
    return created


def seed_users() -> int:
    created = 0
    for u in DEMO_USERS:
        _, new = get_or_create(User, defaults={"nickname": u["nickname"], "role": u["role"]}, email=u["email"])
        created += new
    db.session.commit()
    return created


def seed_current_week(app):
    """Будни текущей недели активны с окном по умолчанию."""
    from blueprints.planning.services import DayPlan, WeekPlanner, week_bounds

    planner = WeekPlanner(app.extensions["booking"], app.extensions["clock"])
    monday, _ = week_bounds(app.extensions["clock"].today())
    plans = [DayPlan(date=monday + timedelta(days=i), is_active=i < 5) for i in range(7)]
    res = planner.save_week_configuration(monday, None, plans)
    return res.value


# ---- main ----
def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--reset", action="store_true", help="drop + create + full seed (demo)")
    parser.add_argument("--catalog-only", action="store_true", help="seed only the ingredient catalog")
    parser.add_argument("--config", default=None, help="config name (dev/test/prod)")
    args = parser.parse_args()

    app = create_app(args.config)
    with app.app_context():
        if args.reset:
            db.drop_all()
            db.create_all()
        elif args.catalog_only:
            print(f"[seed] ingredients created: {seed_catalog()}")
            return
        else:
            db.create_all()

        n_ing = seed_catalog()
        n_users = seed_users()
        report = seed_current_week(app)
        print(f"[seed] ingredients: +{n_ing}, users: +{n_users}, week: {report.to_dict() if report else 'unchanged'}")


if __name__ == "__main__":
    main()
