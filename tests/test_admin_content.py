# tests/test_admin_content.py
"""
Tests for admin notes, site content and phase level editing.

Run:
    pytest tests/test_admin_content.py -v
"""
from datetime import timedelta
from decimal import Decimal

import pytest
from pydantic import ValidationError

from core.utils import utcnow
from models import AdminNote, AuditLog, PhaseLevel
from multilevel.config.phases import get_phase_commission_rate
from services.admin_note_service import (
    AdminNoteError,
    AdminNoteNotFoundError,
    AdminNoteService,
    sanitize_content,
)
from services.phase_level_service import PhaseLevelNotFoundError, PhaseLevelService
from services.site_content.content_merger import DEFAULT_HERO_IMAGE, createDefaultLandingContent
from services.site_content.service import SiteContentService, UnsupportedLocaleError

STORAGE = 'https://storage.purvita.local/public/'


def _attachment(url=STORAGE + 'notes/photo.png', **fields):
    attachment = {"type": "image", "url": url, "name": "photo.png", "size": 1024}
    attachment.update(fields)
    return attachment


# =============================================================================
# ADMIN NOTES
# =============================================================================

class TestAdminNoteService:

    def test_sanitize_content(self):
        assert sanitize_content('  <script>alert("x")</script> ') == \
            '&lt;script&gt;alert(&#34;x&#34;)&lt;/script&gt;'

    async def test_create_escapes_and_audits(self, session, admin_profile):
        """
        TEST: Note with HTML and one attachment.

        Verify: Content escaped, attachment stored, ADMIN_NOTE_CREATED logged.
        """
        note = await AdminNoteService(session).createNote(
            {"content": "<b>Restock</b> tea", "attachments": [_attachment()]},
            adminId=admin_profile.userID
        )
        session.commit()

        assert note["content"] == '&lt;b&gt;Restock&lt;/b&gt; tea'
        assert note["attachments"][0]["url"] == STORAGE + 'notes/photo.png'
        assert note["created_by"] == admin_profile.userID

        log = session.query(AuditLog).filter_by(action='ADMIN_NOTE_CREATED').one()
        assert log.meta == {"attachments": 1}

    async def test_blank_content_rejected(self, session):
        with pytest.raises(ValidationError):
            await AdminNoteService(session).createNote({"content": "   "})

    @pytest.mark.parametrize("attachments, message", [
        ("not-a-list", 'Invalid attachment format'),
        ([{"type": "spreadsheet", "url": STORAGE + "a", "name": "a", "size": 1}], 'Invalid attachment format'),
        ([_attachment(size=11 * 1024 * 1024)], 'Invalid attachment format'),
        ([_attachment(url='https://evil.example.com/photo.png')], 'Invalid attachment URL'),
    ])
    async def test_invalid_attachments(self, session, attachments, message):
        with pytest.raises(AdminNoteError, match=message):
            await AdminNoteService(session).createNote({"content": "Note", "attachments": attachments})

        assert session.query(AdminNote).count() == 0

    async def test_list_newest_first_with_author(self, session, admin_profile):
        service = AdminNoteService(session)
        older = await service.createNote({"content": "Older"}, adminId=admin_profile.userID)
        await service.createNote({"content": "System note"})
        session.query(AdminNote).filter_by(noteID=older["id"]).one().createdAt = utcnow() - timedelta(hours=1)
        session.commit()

        notes = await service.listNotes()

        assert [n["content"] for n in notes] == ['System note', 'Older']
        assert notes[0]["profiles"] is None
        assert notes[1]["profiles"] == {"name": "Admin", "email": "admin@purvita.test"}

    async def test_update_keeps_attachments_when_omitted(self, session):
        service = AdminNoteService(session)
        created = await service.createNote({"content": "First", "attachments": [_attachment()]})

        updated = await service.updateNote({"id": created["id"], "content": "Second <i>"})

        assert updated["content"] == 'Second &lt;i&gt;'
        assert len(updated["attachments"]) == 1

        cleared = await service.updateNote({"id": created["id"], "content": "Third", "attachments": []})
        assert cleared["attachments"] == []

    async def test_update_and_delete_missing(self, session):
        service = AdminNoteService(session)

        with pytest.raises(AdminNoteNotFoundError, match='Note not found'):
            await service.updateNote({"id": "missing", "content": "x"})
        with pytest.raises(AdminNoteNotFoundError):
            await service.deleteNote('missing')
        with pytest.raises(AdminNoteError, match='Note ID is required'):
            await service.deleteNote('')

    async def test_delete(self, session):
        service = AdminNoteService(session)
        created = await service.createNote({"content": "Bye"})

        await service.deleteNote(created["id"])

        assert session.query(AdminNote).count() == 0
        assert session.query(AuditLog).filter_by(action='ADMIN_NOTE_DELETED', entityID=created["id"]).count() == 1


# =============================================================================
# SITE CONTENT
# =============================================================================

class TestSiteContentService:

    async def test_default_branding(self, session):
        branding = await SiteContentService(session).getBranding()

        assert branding.appName == 'PūrVita'
        assert branding.logoPosition == 'beside'
        assert branding.updatedAt is None

    async def test_update_branding(self, session, admin_profile):
        service = SiteContentService(session)

        branding = await service.updateBranding(
            {"appName": "  Pura Vida  ", "logoUrl": "   ", "logoPosition": "above"},
            adminId=admin_profile.userID
        )

        assert branding.appName == 'Pura Vida'
        assert branding.logoUrl is None
        assert branding.logoPosition == 'above'
        assert branding.updatedAt.endswith('Z')
        assert session.query(AuditLog).filter_by(entityType='site_branding').count() == 1

    async def test_branding_requires_name(self, session):
        with pytest.raises(ValidationError):
            await SiteContentService(session).updateBranding({"appName": "   "})

    async def test_default_landing_uses_app_name(self, session):
        content = await SiteContentService(session).getLandingContent('es')

        assert content.locale == 'es'
        assert content.about.title == 'Acerca de PūrVita'
        assert content.hero.backgroundImageUrl == DEFAULT_HERO_IMAGE
        assert [s.id for s in content.howItWorks.steps] == ['step-1', 'step-2', 'step-3']
        assert content.faqs == []

    async def test_landing_follows_branding_name(self, session):
        service = SiteContentService(session)
        await service.updateBranding({"appName": "Vida"})

        content = await service.getLandingContent('en')

        assert content.about.title == 'About Vida'

    async def test_partial_update_merges_over_defaults(self, session):
        """
        TEST: Only the hero title and two FAQs are stored.

        Verify:
            - Hero subtitle and image come from the defaults
            - FAQs sorted, missing id and answer filled in
            - Other sections untouched
        """
        service = SiteContentService(session)

        content = await service.updateLandingContent('en', {
            "hero": {"title": "Feel Better", "backgroundImageUrl": " "},
            "faqs": [{"question": "Shipping?", "order": 2}, {"question": "Returns?", "answer": "30 days", "order": 1}],
        })

        defaults = createDefaultLandingContent('en', 'PūrVita')
        assert content.hero.title == 'Feel Better'
        assert content.hero.subtitle == defaults.hero.subtitle
        assert content.hero.backgroundImageUrl == DEFAULT_HERO_IMAGE
        assert content.about == defaults.about
        assert [f.question for f in content.faqs] == ['Returns?', 'Shipping?']
        assert content.faqs[1].id == 'faq-1'
        assert content.faqs[1].answer == 'Add the answer for this question.'
        assert content.updatedAt is not None

        log = session.query(AuditLog).filter_by(entityType='landing_content').one()
        assert log.meta == {"sections": ["faqs", "hero"]}

    async def test_later_update_keeps_other_sections(self, session):
        service = SiteContentService(session)
        await service.updateLandingContent('en', {"hero": {"title": "Feel Better"}})

        content = await service.updateLandingContent('en', {"about": {"title": "Our Story"}})

        assert content.hero.title == 'Feel Better'
        assert content.about.title == 'Our Story'

    async def test_custom_steps_sorted(self, session):
        content = await SiteContentService(session).updateLandingContent('en', {
            "howItWorks": {"steps": [{"title": "Second", "order": 5}, {"order": 0}, {"title": "Extra"}]}
        })

        steps = content.howItWorks.steps
        assert [s.order for s in steps] == [0, 2, 5]
        assert steps[0].title == 'Share the Products'
        assert steps[1].title == 'Extra'
        assert steps[1].description.startswith('Invite others to your team.')

    async def test_unsupported_locale(self, session):
        service = SiteContentService(session)

        with pytest.raises(UnsupportedLocaleError):
            await service.getLandingContent('fr')
        with pytest.raises(UnsupportedLocaleError):
            await service.updateLandingContent('de', {})


# =============================================================================
# PHASE LEVELS
# =============================================================================

class TestPhaseLevelService:

    async def test_default_level_created_on_first_edit(self, session, admin_profile):
        """
        TEST: Edit level 2 with no stored row.

        Verify: Row created from the defaults, rate cache invalidated.
        """
        assert get_phase_commission_rate(session, 2) == Decimal("0.30")

        row = await PhaseLevelService(session).updatePhaseLevel(
            2, {"commissionRate": "0.35"}, adminId=admin_profile.userID
        )
        session.commit()

        assert row.name == 'Duplicate Team'
        assert row.commissionRate == Decimal("0.35")
        assert get_phase_commission_rate(session, 2) == Decimal("0.35")

        serialized = PhaseLevelService.serialize(row)
        assert serialized["commission_rate"] == 0.35
        assert serialized["is_active"] is True

        log = session.query(AuditLog).filter_by(entityType='phase_level').one()
        assert log.meta == {"commissionRate": "0.35"}

    async def test_existing_row_updated(self, session):
        session.add(PhaseLevel(level=1, name="Partners", commissionRate=Decimal("0.15")))
        session.commit()

        row = await PhaseLevelService(session).updatePhaseLevel(1, {"name": "Builders", "creditCents": 250})

        assert row.name == 'Builders'
        assert row.creditCents == 250
        assert session.query(PhaseLevel).count() == 1

    async def test_unknown_level(self, session):
        with pytest.raises(PhaseLevelNotFoundError):
            await PhaseLevelService(session).updatePhaseLevel(9, {"name": "Nine"})

    async def test_invalid_rate(self, session):
        with pytest.raises(ValidationError):
            await PhaseLevelService(session).updatePhaseLevel(1, {"commissionRate": "1.5"})

    async def test_list_ordered(self, session):
        service = PhaseLevelService(session)
        await service.updatePhaseLevel(3, {"creditCents": 1})
        await service.updatePhaseLevel(0, {"creditCents": 1})

        assert [row.level for row in await service.listPhaseLevels()] == [0, 3]
