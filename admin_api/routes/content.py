# purvita/admin_api/routes/content.py
"""Admin notes, site content, email templates and phase level endpoints."""
import logging

from aiohttp import web

from admin_api.routes.common import read_json, require_permission
from core.db import get_db_session_ctx
from email_system.services.email_template_service import EmailTemplateService
from schemas.admin import EmailTemplatePreviewPayload, EmailTemplateUpdatePayload, PhaseLevelUpdatePayload
from services.admin_note_service import AdminNoteService
from services.audit_log_service import AuditLogService
from services.phase_level_service import PhaseLevelService
from services.site_content.service import SiteContentService

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# NOTES
# ═══════════════════════════════════════════════════════════════════════════

@require_permission('manage_content')
async def list_notes(request: web.Request) -> web.Response:
    with get_db_session_ctx() as session:
        notes = await AdminNoteService(session).listNotes()
    return web.json_response({'notes': notes})


@require_permission('manage_content')
async def create_note(request: web.Request) -> web.Response:
    data = await read_json(request)
    with get_db_session_ctx() as session:
        note = await AdminNoteService(session).createNote(data, adminId=request['admin_id'])
    return web.json_response({'note': note}, status=201)


@require_permission('manage_content')
async def update_note(request: web.Request) -> web.Response:
    data = await read_json(request)
    with get_db_session_ctx() as session:
        note = await AdminNoteService(session).updateNote(data, adminId=request['admin_id'])
    return web.json_response({'note': note})


@require_permission('manage_content')
async def delete_note(request: web.Request) -> web.Response:
    with get_db_session_ctx() as session:
        await AdminNoteService(session).deleteNote(request.query.get('id'), adminId=request['admin_id'])
    return web.json_response({'success': True})


# ═══════════════════════════════════════════════════════════════════════════
# SITE CONTENT
# ═══════════════════════════════════════════════════════════════════════════

@require_permission('manage_content')
async def get_branding(request: web.Request) -> web.Response:
    with get_db_session_ctx() as session:
        branding = await SiteContentService(session).getBranding()
    return web.json_response({'branding': branding.model_dump()})


@require_permission('manage_content')
async def update_branding(request: web.Request) -> web.Response:
    data = await read_json(request)
    with get_db_session_ctx() as session:
        branding = await SiteContentService(session).updateBranding(data, adminId=request['admin_id'])
    return web.json_response({'branding': branding.model_dump()})


@require_permission('manage_content')
async def get_landing(request: web.Request) -> web.Response:
    with get_db_session_ctx() as session:
        content = await SiteContentService(session).getLandingContent(request.match_info['locale'])
    return web.json_response({'content': content.model_dump()})


@require_permission('manage_content')
async def update_landing(request: web.Request) -> web.Response:
    data = await read_json(request)
    with get_db_session_ctx() as session:
        content = await SiteContentService(session).updateLandingContent(
            request.match_info['locale'], data, adminId=request['admin_id']
        )
    return web.json_response({'content': content.model_dump()})


# ═══════════════════════════════════════════════════════════════════════════
# EMAIL TEMPLATES
# ═══════════════════════════════════════════════════════════════════════════

@require_permission('manage_content')
async def list_email_templates(request: web.Request) -> web.Response:
    category = request.query.get('category')
    with get_db_session_ctx() as session:
        service = EmailTemplateService(session)
        if category:
            templates = await service.getTemplatesByCategory(category)
        else:
            templates = await service.getAllTemplates()
        return web.json_response({'templates': [EmailTemplateService.serialize(t) for t in templates]})


@require_permission('manage_content')
async def get_email_template(request: web.Request) -> web.Response:
    with get_db_session_ctx() as session:
        template = await EmailTemplateService(session).getTemplate(request.match_info['templateId'])
        if template is None:
            return web.json_response({'error': 'Template not found'}, status=404)
        return web.json_response({'template': EmailTemplateService.serialize(template)})


@require_permission('manage_content')
async def update_email_template(request: web.Request) -> web.Response:
    template_id = request.match_info['templateId']
    payload = EmailTemplateUpdatePayload.model_validate(await read_json(request))
    fields = payload.model_dump(exclude_unset=True)

    with get_db_session_ctx() as session:
        template = await EmailTemplateService(session).updateTemplate(template_id, fields)
        if template is None:
            return web.json_response({'error': 'Template not found'}, status=404)

        AuditLogService(session).logUserAction(
            'EMAIL_TEMPLATE_UPDATED',
            'email_template',
            template_id,
            {"fields": sorted(fields.keys())},
            userId=request['admin_id']
        )
        return web.json_response({'template': EmailTemplateService.serialize(template)})


@require_permission('manage_content')
async def preview_email_template(request: web.Request) -> web.Response:
    payload = EmailTemplatePreviewPayload.model_validate(await read_json(request))

    with get_db_session_ctx() as session:
        preview = await EmailTemplateService(session).getProcessedTemplate(
            request.match_info['templateId'], payload.variables, payload.locale
        )

    if preview is None:
        return web.json_response({'error': 'Template not found'}, status=404)
    return web.json_response({'preview': preview})


# ═══════════════════════════════════════════════════════════════════════════
# PHASE LEVELS
# ═══════════════════════════════════════════════════════════════════════════

@require_permission('manage_settings')
async def list_phase_levels(request: web.Request) -> web.Response:
    with get_db_session_ctx() as session:
        levels = await PhaseLevelService(session).listPhaseLevels()
        return web.json_response({'phaseLevels': [PhaseLevelService.serialize(level) for level in levels]})


@require_permission('manage_settings')
async def update_phase_level(request: web.Request) -> web.Response:
    try:
        level = int(request.match_info['level'])
    except ValueError:
        raise web.HTTPBadRequest(reason='Invalid phase level')

    payload = PhaseLevelUpdatePayload.model_validate(await read_json(request))

    with get_db_session_ctx() as session:
        row = await PhaseLevelService(session).updatePhaseLevel(level, payload, adminId=request['admin_id'])
        return web.json_response({'phaseLevel': PhaseLevelService.serialize(row)})


def setup(app: web.Application) -> None:
    app.router.add_get('/api/admin/notes', list_notes)
    app.router.add_post('/api/admin/notes', create_note)
    app.router.add_put('/api/admin/notes', update_note)
    app.router.add_delete('/api/admin/notes', delete_note)

    app.router.add_get('/api/admin/site-content/branding', get_branding)
    app.router.add_put('/api/admin/site-content/branding', update_branding)
    app.router.add_get('/api/admin/site-content/landing/{locale}', get_landing)
    app.router.add_put('/api/admin/site-content/landing/{locale}', update_landing)

    app.router.add_get('/api/admin/email-templates', list_email_templates)
    app.router.add_get('/api/admin/email-templates/{templateId}', get_email_template)
    app.router.add_put('/api/admin/email-templates/{templateId}', update_email_template)
    app.router.add_post('/api/admin/email-templates/{templateId}/preview', preview_email_template)

    app.router.add_get('/api/admin/phase-levels', list_phase_levels)
    app.router.add_put('/api/admin/phase-levels/{level}', update_phase_level)
