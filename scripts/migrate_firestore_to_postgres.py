"""
Migrate data from Firestore to the SQL store
Run this after initializing the schema (scripts/init_postgres.py)
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import firebase_admin
from firebase_admin import credentials, firestore
from sqlalchemy.orm import Session
from core.database import SessionLocal
from models.user import User
from models.shop import Shop
from models.product import Product, PRODUCT_STATUSES, CONDITIONS, DEFAULT_CONDITION
from models.order import Order
from utils.catalog import normalize_product_record, reconcile_sale_fields
from utils.themes import DEFAULT_THEME, is_known_theme
from utils.validation import normalize_alias, normalize_cbu, normalize_whatsapp
from datetime import datetime, timezone


def _now():
    return datetime.now(timezone.utc)


def init_firebase():
    """Initialize Firebase Admin SDK"""
    script_dir = os.path.dirname(os.path.abspath(__file__))
    project_root = os.path.dirname(script_dir)
    cred_path = os.path.join(project_root, os.getenv("FIREBASE_ADMIN_SDK_PATH", "firebase-adminsdk.json"))

    if not os.path.exists(cred_path):
        print(f"✗ Firebase credentials not found at {cred_path}")
        sys.exit(1)

    cred = credentials.Certificate(cred_path)
    firebase_admin.initialize_app(cred)
    return firestore.client()


def migrate_users(db: Session, firestore_db):
    """Migrate users collection"""
    print("\n=== Migrating Users ===")

    count = 0
    for doc in firestore_db.collection('users').stream():
        data = doc.to_dict() or {}
        user = User(
            uid=doc.id,
            email=(data.get('email') or '').strip() or None,
            display_name=data.get('displayName'),
            photo_url=data.get('photoURL') or data.get('photoUrl'),
            shop_id=data.get('shopId'),
            created_at=data.get('createdAt') or _now(),
        )
        db.merge(user)
        count += 1

    db.commit()
    print(f"✓ Migrated {count} users")


def migrate_shops(db: Session, firestore_db):
    """Migrate shops collection, keeping the existing document ids"""
    print("\n=== Migrating Shops ===")

    count = 0
    for doc in firestore_db.collection('shops').stream():
        data = doc.to_dict() or {}
        owner_id = data.get('ownerId')
        if not owner_id:
            print(f"  ⚠ Skipping shop {doc.id} - no owner")
            continue

        theme = data.get('theme') or DEFAULT_THEME
        shop = Shop(
            id=doc.id,
            owner_id=owner_id,
            name=data.get('name') or doc.id,
            description=data.get('description') or '',
            whatsapp=normalize_whatsapp(data.get('whatsapp')),
            location=data.get('location') or '',
            alias=normalize_alias(data.get('alias')),
            cbu=normalize_cbu(data.get('cbu'))[:22],
            theme=theme if is_known_theme(theme) else DEFAULT_THEME,
            active=bool(data.get('active', True)),
            created_at=data.get('createdAt') or _now(),
            updated_at=data.get('updatedAt'),
        )
        db.merge(shop)
        count += 1

    db.commit()
    print(f"✓ Migrated {count} shops")


def migrate_products(db: Session, firestore_db):
    """Migrate products collection; legacy imageUrl/name shapes are normalized"""
    print("\n=== Migrating Products ===")

    count = 0
    skipped = 0
    for doc in firestore_db.collection('products').stream():
        data = normalize_product_record(doc.to_dict() or {})
        if not data.get('shopId'):
            print(f"  ⚠ Skipping product {doc.id} - no shopId")
            skipped += 1
            continue

        data['status'] = data['status'] if data['status'] in PRODUCT_STATUSES else 'available'
        # sold rows always carry a sale time, other rows never do
        data = reconcile_sale_fields(data)
        product = Product(
            id=doc.id,
            shop_id=data['shopId'],
            title=data['title'],
            description=data.get('description') or '',
            price=data['price'],
            condition=data['condition'] if data['condition'] in CONDITIONS else DEFAULT_CONDITION,
            images=data['images'],
            status=data['status'],
            buyer_info=(data.get('buyerInfo') or '').strip() or None,
            sold_at=data.get('soldAt'),
            created_at=data.get('createdAt') or _now(),
            updated_at=data.get('updatedAt'),
        )
        db.merge(product)
        count += 1

    db.commit()
    print(f"✓ Migrated {count} products ({skipped} skipped)")


def migrate_orders(db: Session, firestore_db):
    """Migrate orders collection"""
    print("\n=== Migrating Orders ===")

    count = 0
    for doc in firestore_db.collection('orders').stream():
        data = doc.to_dict() or {}
        order = Order(
            id=doc.id,
            buyer_id=data.get('buyerId') or '',
            shop_id=data.get('shopId') or '',
            product_id=data.get('productId') or '',
            product_title=data.get('productTitle'),
            price=float(data.get('price') or 0),
            status=data.get('status') or 'pending_payment',
            created_at=data.get('createdAt') or _now(),
        )
        db.merge(order)
        count += 1

    db.commit()
    print(f"✓ Migrated {count} orders")


def main():
    print("=" * 50)
    print("Firestore → SQL Migration")
    print("=" * 50)

    print("\nInitializing Firebase...")
    firestore_db = init_firebase()
    print("✓ Firebase initialized")

    db = SessionLocal()
    try:
        migrate_users(db, firestore_db)
        migrate_shops(db, firestore_db)
        migrate_products(db, firestore_db)
        migrate_orders(db, firestore_db)
        print("\n" + "=" * 50)
        print("✓ Migration completed successfully!")
        print("=" * 50)
    except Exception as e:
        print(f"\n✗ Migration failed: {e}")
        db.rollback()
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
