"""
URL configuration for the coaching companion.

The page itself lives at the root; everything under api/ is the JSON surface
used by scripts and the page's own fetch calls.
"""
from django.urls import path
from notes.views import (
    coaching_view, settings_view, labels_view, labels_reset_view, summary_edit_view,
    download_summary, download_full_notes, download_profile, upload_profile,
    api_session, api_update_field, api_action_steps, api_reset_session,
    api_labels, api_reset_labels, api_finish, api_brief_summary,
    api_reflective_question, api_calendar,
)

urlpatterns = [
    path('', coaching_view, name='coaching'),
    path('settings/', settings_view, name='coach_settings'),
    path('labels/', labels_view, name='labels'),
    path('labels/reset/', labels_reset_view, name='labels_reset'),
    path('summary/', summary_edit_view, name='summary_edit'),
    path('download/summary/', download_summary, name='download_summary'),
    path('download/notes/', download_full_notes, name='download_full_notes'),
    path('download/profile/', download_profile, name='download_profile'),
    path('upload/profile/', upload_profile, name='upload_profile'),
    path('api/session/', api_session, name='api_session'),
    path('api/session/field/', api_update_field, name='api_update_field'),
    path('api/session/action-steps/', api_action_steps, name='api_action_steps'),
    path('api/session/reset/', api_reset_session, name='api_reset_session'),
    path('api/labels/', api_labels, name='api_labels'),
    path('api/labels/reset/', api_reset_labels, name='api_reset_labels'),
    path('api/summary/finish/', api_finish, name='api_finish'),
    path('api/summary/brief/', api_brief_summary, name='api_brief_summary'),
    path('api/explore/question/', api_reflective_question, name='api_reflective_question'),
    path('api/calendar/', api_calendar, name='api_calendar'),
]
