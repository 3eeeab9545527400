import json
import logging
from zoneinfo import ZoneInfo

from django.conf import settings
from django.contrib import messages
from django.http import HttpResponse, JsonResponse
from django.shortcuts import redirect, render
from django.urls import reverse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from .calendar_links import calendar_embed_url, calendar_event_url
from .documents import full_notes_filename, full_notes_text, summary_filename
from .labels import DEFAULT_LABELS, LABEL_SECTIONS, QUESTION_BANKS, LabelError, format_key
from .navigation import GenerationInFlight, RequestState, TabView, next_view, previous_view
from .profiles import ProfileImportError, profile_filename
from .records import (
    SECTIONS,
    RecordError,
    add_action_step,
    remove_action_step,
    resolve_field,
    update_action_step,
    update_field,
)
from .workspace import Workspace

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("audit")

RESET_CONFIRM_TEXT = "Are you sure you want to start a new session? This will clear current notes."
LABEL_RESET_CONFIRM_TEXT = "Reset these questions to default?"


def _workspace(request) -> Workspace:
    return Workspace(request.session)


def _local_tz():
    return ZoneInfo(settings.COACH_TIME_ZONE)


def _confirmed(value) -> bool:
    return value is True or str(value).lower() in {"yes", "true", "1", "on"}


def _redirect_to(tab: TabView):
    return redirect(f"{reverse('coaching')}?tab={tab.value}")


def _attachment(content: str, filename: str, content_type: str) -> HttpResponse:
    response = HttpResponse(content, content_type=f"{content_type}; charset=utf-8")
    response["Content-Disposition"] = f'attachment; filename="{filename}"'
    return response


def _question_fields(record, labels, section: str):
    """(form name, question text, current answer) for each configurable question."""
    model = getattr(record, section)
    return [
        (f"{section}.{key}", text, getattr(model, resolve_field(model, key)))
        for key, text in labels.section(section).items()
    ]


def _apply_posted_fields(workspace: Workspace, post) -> None:
    """Write every posted answer that changed, saving after each one."""
    record = workspace.sessions.load()
    for name in ("coacheeName", "date"):
        if name in post and post[name] != getattr(record, resolve_field(record, name)):
            record = update_field(record, None, name, post[name])
            workspace.sessions.save(record)
    for name, value in post.items():
        section, _, field = name.partition(".")
        if section not in SECTIONS or not field or field == "actionSteps":
            continue
        model = getattr(record, section)
        if value != getattr(model, resolve_field(model, field)):
            record = update_field(record, section, field, value)
            workspace.sessions.save(record)
    if "express.actionSteps" in post:
        steps = post.getlist("express.actionSteps")
        if steps != record.express.action_steps:
            record = update_field(record, "express", "actionSteps", steps)
            workspace.sessions.save(record)


def coaching_view(request):
    workspace = _workspace(request)

    if request.method == "POST":
        tab = TabView.parse(request.POST.get("tab"), workspace.active_tab)
        action = request.POST.get("action", "save")
        try:
            _apply_posted_fields(workspace, request.POST)
        except RecordError as e:
            messages.error(request, str(e))
            return _redirect_to(tab)

        if action == "next":
            tab = next_view(tab)
        elif action == "back":
            tab = previous_view(tab)
        elif action.startswith("goto:"):
            tab = TabView.parse(action[len("goto:"):], tab)
        elif action == "add_step":
            workspace.sessions.save(add_action_step(workspace.sessions.load()))
        elif action.startswith("remove_step:"):
            try:
                index = int(action[len("remove_step:"):])
                workspace.sessions.save(remove_action_step(workspace.sessions.load(), index))
            except (ValueError, RecordError) as e:
                messages.error(request, f"Could not remove step: {e}")
        elif action == "suggest_question":
            try:
                workspace.suggest_question()
            except GenerationInFlight as e:
                messages.warning(request, str(e))
        elif action == "finish":
            try:
                result = workspace.finish()
            except GenerationInFlight as e:
                messages.warning(request, str(e))
                return _redirect_to(tab)
            if result.text:
                # failed calls still land on the Summary tab with the fallback text
                tab = TabView.SUMMARY
            else:
                messages.error(request, result.reason)
        elif action == "reset":
            if _confirmed(request.POST.get("confirm")):
                workspace.start_new_session()
                tab = TabView.PROFILE
            else:
                messages.info(request, "New session cancelled.")

        workspace.active_tab = tab
        return _redirect_to(tab)

    if "tab" in request.GET:
        workspace.active_tab = TabView.parse(request.GET["tab"], workspace.active_tab)
    record = workspace.sessions.load()
    labels = workspace.labels.load()
    summary = workspace.summary
    coach_email = workspace.coach.coach_email

    return render(request, "notes/coaching.html", {
        "record": record,
        "labels": labels,
        "tab": workspace.active_tab.value,
        "tabs": [(t.value, t.label) for t in TabView],
        "engage_fields": _question_fields(record, labels, "engage"),
        "express_fields": [f for f in _question_fields(record, labels, "express") if f[0] != "express.encouragement"],
        "encouragement_label": labels.express["encouragement"],
        "label_sections": [
            (section, [(key, format_key(key), text) for key, text in labels.section(section).items()])
            for section in LABEL_SECTIONS
        ],
        "question_banks": QUESTION_BANKS,
        "reflective_question": workspace.question,
        "summary": summary,
        "calendar_url": calendar_event_url(record, summary, _local_tz()),
        "calendar_embed_url": calendar_embed_url(coach_email, settings.COACH_TIME_ZONE),
        "coach_email": coach_email,
        "has_api_key": bool(workspace.coach.api_key),
        "reset_confirm_text": RESET_CONFIRM_TEXT,
        "label_reset_confirm_text": LABEL_RESET_CONFIRM_TEXT,
    })


@require_http_methods(["POST"])
def settings_view(request):
    workspace = _workspace(request)
    if "api_key" in request.POST:
        workspace.coach.set_api_key(request.POST["api_key"])
    if "coach_email" in request.POST:
        workspace.coach.set_coach_email(request.POST["coach_email"])
    messages.success(request, "Settings saved.")
    return _redirect_to(workspace.active_tab)


@require_http_methods(["POST"])
def labels_view(request):
    workspace = _workspace(request)
    section = request.POST.get("section", "")
    try:
        for name, value in request.POST.items():
            if name.startswith("label."):
                workspace.labels.update(section, name[len("label."):], value)
    except LabelError as e:
        messages.error(request, str(e))
    return _redirect_to(workspace.active_tab)


@require_http_methods(["POST"])
def labels_reset_view(request):
    workspace = _workspace(request)
    if not _confirmed(request.POST.get("confirm")):
        return _redirect_to(workspace.active_tab)
    try:
        workspace.labels.reset(request.POST.get("section", ""))
    except LabelError as e:
        messages.error(request, str(e))
    return _redirect_to(workspace.active_tab)


@require_http_methods(["POST"])
def summary_edit_view(request):
    workspace = _workspace(request)
    workspace.summary = request.POST.get("summary", "")
    return _redirect_to(TabView.SUMMARY)


@require_http_methods(["GET"])
def download_summary(request):
    workspace = _workspace(request)
    record = workspace.sessions.load()
    return _attachment(workspace.summary, summary_filename(record), "text/plain")


@require_http_methods(["GET"])
def download_full_notes(request):
    workspace = _workspace(request)
    record = workspace.sessions.load()
    text = full_notes_text(record, workspace.labels.load())
    return _attachment(text, full_notes_filename(record), "text/plain")


@require_http_methods(["POST"])
def download_profile(request):
    workspace = _workspace(request)
    try:
        record, document = workspace.export_profile()
    except GenerationInFlight as e:
        messages.warning(request, str(e))
        return _redirect_to(workspace.active_tab)
    return _attachment(json.dumps(document, indent=2, ensure_ascii=False), profile_filename(record), "application/json")


@require_http_methods(["POST"])
def upload_profile(request):
    workspace = _workspace(request)
    upload = request.FILES.get("profile")
    if upload is None:
        messages.error(request, "Please choose a profile file to upload.")
        return _redirect_to(TabView.PROFILE)
    try:
        workspace.import_profile(upload.read())
    except ProfileImportError as e:
        messages.error(request, str(e))
    else:
        messages.success(request, "Profile loaded successfully!")
    return _redirect_to(TabView.PROFILE)


# ------------------ JSON API ------------------

def _json_body(request) -> dict:
    try:
        data = json.loads(request.body or b"{}")
    except ValueError:
        raise RecordError("Request body must be JSON")
    if not isinstance(data, dict):
        raise RecordError("Request body must be a JSON object")
    return data


def _session_payload(workspace: Workspace, record=None) -> dict:
    record = record or workspace.sessions.load()
    return {
        "session": record.to_storage(),
        "summary": workspace.summary,
        "tab": workspace.active_tab.value,
    }


@csrf_exempt
@require_http_methods(["GET"])
def api_session(request):
    try:
        return JsonResponse(_session_payload(_workspace(request)))
    except Exception as e:
        logger.error(f"Session read error: {str(e)}")
        return JsonResponse({'error': str(e)}, status=500)


@csrf_exempt
@require_http_methods(["POST"])
def api_update_field(request):
    """Replace one answer: {"section": "engage", "field": "wins", "value": "..."}.

    Leave out "section" (or send null) for coacheeName / date.
    """
    try:
        data = _json_body(request)
        workspace = _workspace(request)
        record = workspace.sessions.update(data.get("section"), data.get("field", ""), data.get("value"))
        return JsonResponse(_session_payload(workspace, record))
    except ValueError as e:
        return JsonResponse({'error': str(e)}, status=400)
    except Exception as e:
        logger.error(f"Field update error: {str(e)}")
        return JsonResponse({'error': str(e)}, status=500)


@csrf_exempt
@require_http_methods(["POST"])
def api_action_steps(request):
    """{"op": "add"} | {"op": "remove", "index": 1} | {"op": "update", "index": 0, "value": "..."}"""
    try:
        data = _json_body(request)
        workspace = _workspace(request)
        record = workspace.sessions.load()
        op = data.get("op")
        if op == "add":
            record = add_action_step(record)
        elif op == "remove":
            record = remove_action_step(record, int(data.get("index", -1)))
        elif op == "update":
            record = update_action_step(record, int(data.get("index", -1)), data.get("value"))
        else:
            return JsonResponse({'error': f'Unknown action step operation: {op}'}, status=400)
        workspace.sessions.save(record)
        return JsonResponse(_session_payload(workspace, record))
    except (TypeError, ValueError) as e:
        return JsonResponse({'error': str(e)}, status=400)
    except Exception as e:
        logger.error(f"Action step error: {str(e)}")
        return JsonResponse({'error': str(e)}, status=500)


@csrf_exempt
@require_http_methods(["POST"])
def api_reset_session(request):
    try:
        data = _json_body(request)
        if not _confirmed(data.get("confirm")):
            return JsonResponse({'error': 'Confirmation required', 'confirm': RESET_CONFIRM_TEXT}, status=400)
        workspace = _workspace(request)
        record = workspace.start_new_session()
        return JsonResponse(_session_payload(workspace, record))
    except ValueError as e:
        return JsonResponse({'error': str(e)}, status=400)
    except Exception as e:
        logger.error(f"Session reset error: {str(e)}")
        return JsonResponse({'error': str(e)}, status=500)


@csrf_exempt
@require_http_methods(["GET", "POST"])
def api_labels(request):
    """GET the question labels, or POST {"section", "key", "value"} to change one."""
    try:
        workspace = _workspace(request)
        if request.method == "GET":
            return JsonResponse({'labels': workspace.labels.load().model_dump(), 'defaults': DEFAULT_LABELS})
        data = _json_body(request)
        labels = workspace.labels.update(data.get("section", ""), data.get("key", ""), data.get("value"))
        return JsonResponse({'labels': labels.model_dump()})
    except ValueError as e:
        return JsonResponse({'error': str(e)}, status=400)
    except Exception as e:
        logger.error(f"Label error: {str(e)}")
        return JsonResponse({'error': str(e)}, status=500)


@csrf_exempt
@require_http_methods(["POST"])
def api_reset_labels(request):
    try:
        data = _json_body(request)
        if not _confirmed(data.get("confirm")):
            return JsonResponse({'error': 'Confirmation required', 'confirm': LABEL_RESET_CONFIRM_TEXT}, status=400)
        labels = _workspace(request).labels.reset(data.get("section", ""))
        return JsonResponse({'labels': labels.model_dump()})
    except ValueError as e:
        return JsonResponse({'error': str(e)}, status=400)
    except Exception as e:
        logger.error(f"Label reset error: {str(e)}")
        return JsonResponse({'error': str(e)}, status=500)


@csrf_exempt
@require_http_methods(["POST"])
def api_finish(request):
    """Generate the email summary and switch to the Summary tab."""
    try:
        workspace = _workspace(request)
        result = workspace.finish()
        if result.state == RequestState.FAILED and not result.text:
            return JsonResponse({'error': result.reason, 'request': result.to_dict()}, status=400)
        return JsonResponse({'summary': result.text, 'request': result.to_dict(), 'tab': workspace.active_tab.value})
    except GenerationInFlight as e:
        return JsonResponse({'error': str(e)}, status=409)
    except Exception as e:
        logger.error(f"Summary error: {str(e)}")
        return JsonResponse({'error': str(e)}, status=500)


@csrf_exempt
@require_http_methods(["POST"])
def api_brief_summary(request):
    try:
        result = _workspace(request).brief_summary()
        return JsonResponse({'summary': result.text, 'request': result.to_dict()})
    except GenerationInFlight as e:
        return JsonResponse({'error': str(e)}, status=409)
    except Exception as e:
        logger.error(f"Brief summary error: {str(e)}")
        return JsonResponse({'error': str(e)}, status=500)


@csrf_exempt
@require_http_methods(["POST"])
def api_reflective_question(request):
    try:
        result = _workspace(request).suggest_question()
        return JsonResponse({'question': result.text, 'request': result.to_dict()})
    except GenerationInFlight as e:
        return JsonResponse({'error': str(e)}, status=409)
    except Exception as e:
        logger.error(f"Question error: {str(e)}")
        return JsonResponse({'error': str(e)}, status=500)


@csrf_exempt
@require_http_methods(["GET"])
def api_calendar(request):
    try:
        workspace = _workspace(request)
        record = workspace.sessions.load()
        return JsonResponse({
            'url': calendar_event_url(record, workspace.summary, _local_tz()),
            'embedUrl': calendar_embed_url(workspace.coach.coach_email, settings.COACH_TIME_ZONE),
        })
    except Exception as e:
        logger.error(f"Calendar link error: {str(e)}")
        return JsonResponse({'error': str(e)}, status=500)
