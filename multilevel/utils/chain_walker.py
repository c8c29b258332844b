# purvita/multilevel/utils/chain_walker.py
"""
Safe sponsor chain walking utilities.
Prevents infinite loops on corrupted referral trees.
"""
from typing import Optional, Callable, Set, List
from sqlalchemy.orm import Session
import logging

from models.profile import Profile
from multilevel.config.phases import MAX_UPLINE_DEPTH

logger = logging.getLogger(__name__)


class ChainWalker:
    """
    Safe utilities for walking sponsor upline/downline chains.
    Profile.sponsorID is the single parent pointer.
    """

    def __init__(self, session: Session):
        self.session = session

    def walk_upline(
            self,
            start_user: Profile,
            callback: Callable[[Profile, int], bool],
            max_depth: int = MAX_UPLINE_DEPTH
    ) -> int:
        """
        Walk up the sponsor chain, calling callback for each sponsor.

        Args:
            start_user: Starting profile (not passed to callback)
            callback: Function(profile, level) -> continue_walking (bool)
            max_depth: Maximum number of sponsors visited

        Returns:
            Number of sponsors processed
        """
        current_user = start_user
        level = 1
        processed = 0
        visited = {start_user.userID}

        while current_user.sponsorID and level <= max_depth:
            # Check for cycles
            if current_user.sponsorID in visited:
                logger.error(f"Cycle detected at user {current_user.sponsorID}")
                break

            sponsor = self.session.query(Profile).filter_by(
                userID=current_user.sponsorID
            ).first()

            if not sponsor:
                logger.warning(
                    f"Sponsor not found: {current_user.sponsorID} "
                    f"for user {current_user.userID}"
                )
                break

            visited.add(sponsor.userID)

            should_continue = callback(sponsor, level)
            processed += 1

            if not should_continue:
                break

            current_user = sponsor
            level += 1

        return processed

    def walk_downline(
            self,
            start_user: Profile,
            callback: Callable[[Profile, int], None],
            max_depth: int = MAX_UPLINE_DEPTH,
            visited: Optional[Set[str]] = None,
            _level: int = 1
    ) -> int:
        """
        Walk down the referral tree depth-first.

        Args:
            start_user: Starting profile
            callback: Function(profile, level) for each referral, level 1 = direct
            max_depth: Maximum depth
            visited: Set of visited user IDs (for cycle detection)

        Returns:
            Total number of referrals processed
        """
        if visited is None:
            visited = set()

        if _level > max_depth:
            return 0

        if start_user.userID in visited:
            logger.error(f"Cycle detected in downline at user {start_user.userID}")
            return 0

        visited.add(start_user.userID)

        referrals = self.session.query(Profile).filter(
            Profile.sponsorID == start_user.userID
        ).all()

        processed = 0

        for referral in referrals:
            if referral.userID in visited:
                continue

            callback(referral, _level)
            processed += 1

            processed += self.walk_downline(
                referral,
                callback,
                max_depth,
                visited,
                _level + 1
            )

        return processed

    def get_upline_chain(self, user: Profile, max_depth: int = MAX_UPLINE_DEPTH) -> List[Profile]:
        """
        Get sponsors from the direct sponsor upwards.

        Returns:
            List of profiles, index 0 = level 1
        """
        chain = []

        def collect(sponsor, level):
            chain.append(sponsor)
            return True

        self.walk_upline(user, collect, max_depth)
        return chain

    def count_downline(self, user: Profile, max_depth: int = MAX_UPLINE_DEPTH) -> int:
        """Count total number of referrals in the tree below user."""
        count = [0]

        def counter(referral, level):
            count[0] += 1

        self.walk_downline(user, counter, max_depth)
        return count[0]

    def count_members_at_depth(self, user: Profile, depth: int) -> int:
        """
        Count referrals exactly `depth` levels below user.

        depth=1 counts direct referrals.
        """
        if depth < 1:
            return 0

        count = [0]

        def counter(referral, level):
            if level == depth:
                count[0] += 1

        self.walk_downline(user, counter, depth)
        return count[0]
