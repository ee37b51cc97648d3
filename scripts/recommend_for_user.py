"""
Print recommendations for a user as JSON.
Useful for checking the pipeline against a real database and TMDB key.
"""

import sys
from pathlib import Path

# Add parent directory to path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

import argparse
import json
import logging

from watchnext_recommendation_service.errors import RecommendationError
from watchnext_recommendation_service.recommenders.types import RecommendationResult
from watchnext_recommendation_service.repos import InteractionRepository, UserRepository
from watchnext_recommendation_service.services import GenreCache, RecommendationService, TMDBClient

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def build_report(service: RecommendationService, result: RecommendationResult) -> dict:
    """Shape a result for printing, including the pipeline path taken."""
    recommendations = service.serialize(result)
    return {
        "user_id": result.user_id,
        "path": [state.value for state in result.path],
        "count": len(recommendations),
        "recommendations": recommendations,
    }


def main():
    """Main execution function."""
    parser = argparse.ArgumentParser(
        description='Generate recommendations for a user'
    )
    parser.add_argument(
        'user_id',
        type=str,
        help='User to recommend for'
    )
    parser.add_argument(
        '--skip-user-check',
        action='store_true',
        help='Do not require the user to exist in the users table'
    )
    parser.add_argument(
        '--indent',
        type=int,
        default=2,
        help='JSON indentation (default: 2)'
    )

    args = parser.parse_args()

    from watchnext_recommendation_service.models.database import session_scope

    try:
        provider = TMDBClient()

        with session_scope() as db:
            service = RecommendationService(
                interaction_store=InteractionRepository(db),
                metadata_provider=provider,
                genre_cache=GenreCache(provider),
                user_store=None if args.skip_user_check else UserRepository(db),
            )
            result = service.recommend(args.user_id)
            report = build_report(service, result)

        print(json.dumps(report, indent=args.indent, default=str))

    except RecommendationError as e:
        logger.error(f"✗ Could not generate recommendations: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
