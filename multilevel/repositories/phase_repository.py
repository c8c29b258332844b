# purvita/multilevel/repositories/phase_repository.py
"""
Phase persistence and automatic phase recalculation.

Promotion rules (an "active" member holds an active subscription):
    phase 1: member active with at least 2 active direct referrals
    phase 2: phase 1 with 4+ active second-level members in total, and every
             direct that has active referrals has at least 2 of them
    phase 3: phase 2 and at least 2 active directs are themselves phase 2+
A manual override set by an admin always wins.
"""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from models.phase import Phase, PhaseLevel
from models.profile import Profile
from models.subscription import Subscription
from multilevel.config.phases import (
    PhaseTier,
    PHASE_1_DIRECT_REFERRALS,
    PHASE_2_SECOND_LEVEL_TOTAL,
    PHASE_2_SECOND_LEVEL_PER_DIRECT,
    PHASE_3_PHASE_2_DIRECTS,
)

logger = logging.getLogger(__name__)


class PhaseRepository:

    def __init__(self, session: Session):
        self.session = session

    def findByUserId(self, userId: str) -> Optional[Phase]:
        return self.session.query(Phase).filter_by(userID=userId).first()

    def getPhase(self, userId: str) -> int:
        """Effective phase, 0 for members without a phase row."""
        phase = self.findByUserId(userId)
        if phase is None:
            return 0
        if phase.manualPhaseOverride is not None:
            return int(phase.manualPhaseOverride)
        return int(phase.phase or 0)

    def ensureBasePhase(self, userId: str) -> Phase:
        phase = self.findByUserId(userId)
        if phase:
            return phase

        phase = Phase(userID=userId, phase=0, highestPhase=0)
        self.session.add(phase)
        self.session.flush()
        logger.info(f"Base phase created for user {userId}")
        return phase

    def getPhaseLevel(self, level: int) -> Optional[PhaseLevel]:
        return self.session.query(PhaseLevel).filter_by(level=level).first()

    # ═══════════════════════════════════════════════════════════════════
    # RECALCULATION
    # ═══════════════════════════════════════════════════════════════════

    def _isActive(self, userId: str) -> bool:
        return self.session.query(Subscription.subscriptionID).filter(
            Subscription.userID == userId,
            Subscription.status == 'active'
        ).first() is not None

    def _activeDirects(self, userId: str) -> List[str]:
        rows = (
            self.session.query(Profile.userID)
            .join(Subscription, Subscription.userID == Profile.userID)
            .filter(
                Profile.sponsorID == userId,
                Subscription.status == 'active'
            )
            .distinct()
            .all()
        )
        return [row[0] for row in rows]

    def calculatePhase(self, userId: str) -> int:
        """Phase earned by the network alone, ignoring overrides."""
        if not self._isActive(userId):
            return PhaseTier.PHASE_0

        directs = self._activeDirects(userId)
        if len(directs) < PHASE_1_DIRECT_REFERRALS:
            return PhaseTier.PHASE_0

        # Directs without active referrals are not counted
        second_level = [
            count for count in (len(self._activeDirects(direct)) for direct in directs) if count > 0
        ]
        if (not second_level
                or sum(second_level) < PHASE_2_SECOND_LEVEL_TOTAL
                or min(second_level) < PHASE_2_SECOND_LEVEL_PER_DIRECT):
            return PhaseTier.PHASE_1

        phase_2_directs = sum(
            1 for direct in directs if self.getPhase(direct) >= PhaseTier.PHASE_2
        )
        if phase_2_directs >= PHASE_3_PHASE_2_DIRECTS:
            return PhaseTier.PHASE_3

        return PhaseTier.PHASE_2

    def recalculatePhase(self, userId: str) -> int:
        """
        Recalculate and store the phase of a member.

        Returns:
            Effective phase after recalculation
        """
        phase = self.ensureBasePhase(userId)
        calculated = int(self.calculatePhase(userId))

        if calculated != phase.phase:
            logger.info(f"Phase change for user {userId}: {phase.phase} → {calculated}")

        phase.phase = calculated
        phase.highestPhase = max(phase.highestPhase or 0, calculated)
        self.session.flush()

        if phase.manualPhaseOverride is not None:
            return int(phase.manualPhaseOverride)
        return calculated
