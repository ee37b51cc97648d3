"""
Load user likes and dislikes from a CSV export into the interaction store.

Expected columns: user_id, item_id, liked, and optionally media_type.
"""

import sys
from pathlib import Path

# Add parent directory to path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

import logging
import pandas as pd
import argparse

from sqlalchemy.orm import Session

from watchnext_recommendation_service.repos import InteractionRepository, UserRepository

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ['user_id', 'item_id', 'liked']

_TRUE_VALUES = {'true', '1', 'yes', 'like', 'liked'}
_FALSE_VALUES = {'false', '0', 'no', 'dislike', 'disliked'}


def parse_liked(value) -> bool | None:
    """
    Interpret a CSV cell as like (True) or dislike (False).

    Returns:
        None when the value is missing or unrecognized
    """
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return None
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    return None


def clean_dataframe_for_db(df: pd.DataFrame) -> pd.DataFrame:
    """
    Normalize an interactions DataFrame for storage.

    Rows without a user, a numeric item id or a readable verdict are
    dropped. Missing media types become None.

    Args:
        df: Raw DataFrame

    Returns:
        Cleaned DataFrame
    """
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns: {', '.join(missing)}")

    df = df.copy()
    if 'media_type' not in df.columns:
        df['media_type'] = None

    df['user_id'] = df['user_id'].where(pd.notnull(df['user_id']), None)
    df['user_id'] = df['user_id'].map(lambda v: str(v).strip() if v is not None else None)
    df['item_id'] = pd.to_numeric(df['item_id'], errors='coerce')
    df['liked'] = df['liked'].map(parse_liked)

    before = len(df)
    df = df[df['user_id'].astype(bool) & df['item_id'].notnull() & df['liked'].notnull()].copy()
    dropped = before - len(df)
    if dropped:
        logger.warning(f"Dropped {dropped} rows with missing or invalid values")

    df = df.astype({'item_id': int})
    df['liked'] = df['liked'].astype(bool)
    df = df.astype({'media_type': object})
    df['media_type'] = df['media_type'].where(pd.notnull(df['media_type']), None)

    return df[['user_id', 'item_id', 'liked', 'media_type']].reset_index(drop=True)


def load_interactions(
    db: Session,
    input_path: Path,
    batch_size: int = 500
) -> int:
    """
    Read a CSV and store its interactions.

    Args:
        db: Database session
        input_path: CSV file path
        batch_size: Commit interval

    Returns:
        Number of interactions stored
    """
    logger.info("="*70)
    logger.info("LOADING INTERACTIONS")
    logger.info("="*70)

    if not input_path.exists():
        raise FileNotFoundError(f"Interactions file not found: {input_path}")

    df = pd.read_csv(input_path)
    logger.info(f"Loaded {len(df)} rows from {input_path}")

    df = clean_dataframe_for_db(df)
    if df.empty:
        logger.warning("No valid interactions to store")
        return 0

    # Interactions reference users, so make sure every user row exists first
    users = UserRepository(db)
    user_ids = sorted(df['user_id'].unique())
    for user_id in user_ids:
        users.get_or_create_user(user_id)
    logger.info(f"✓ Ensured {len(user_ids)} users")

    # Native types only; DB drivers reject numpy scalars
    rows = [
        {
            'user_id': str(row['user_id']),
            'item_id': int(row['item_id']),
            'liked': bool(row['liked']),
            'media_type': row['media_type'],
        }
        for row in df.to_dict('records')
    ]
    count = InteractionRepository(db).bulk_record(rows, batch_size=batch_size)
    logger.info(f"✓ Stored {count} interactions")

    return count


def main():
    """Main execution function."""
    parser = argparse.ArgumentParser(
        description='Load user interactions from CSV into the database'
    )
    parser.add_argument(
        '--input',
        type=str,
        default='data/interactions.csv',
        help='CSV file relative to the project root (default: data/interactions.csv)'
    )
    parser.add_argument(
        '--batch-size',
        type=int,
        default=500,
        help='Rows per commit (default: 500)'
    )
    parser.add_argument(
        '--init-db',
        action='store_true',
        help='Create missing tables before loading'
    )

    args = parser.parse_args()

    input_path = project_root / args.input

    logger.info(f"Input file: {input_path}")
    logger.info(f"Batch size: {args.batch_size}")

    from watchnext_recommendation_service.models.database import init_db, session_scope

    try:
        if args.init_db:
            init_db()
            logger.info("✓ Tables created")

        with session_scope() as db:
            count = load_interactions(db, input_path, batch_size=args.batch_size)

        logger.info("="*70)
        logger.info(f"DONE: {count} interactions loaded")
        logger.info("="*70)

    except Exception as e:
        logger.error(f"\n✗ Error loading interactions: {e}", exc_info=True)
        sys.exit(1)


if __name__ == '__main__':
    main()
