import os
from importlib import import_module

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from notes.security import encrypt_value, is_encrypted
from notes.storage import API_KEY_KEY, COACH_EMAIL_KEY, LABELS_KEY, SESSION_KEY

STORED_KEYS = (SESSION_KEY, LABELS_KEY, API_KEY_KEY, COACH_EMAIL_KEY)


class Command(BaseCommand):
    help = "Encrypt stored coaching notes and keys that are still plaintext. Requires ENCRYPTION_KEY and file sessions."

    def handle(self, *args, **options):
        if not settings.ENCRYPTION_KEY:
            raise CommandError("ENCRYPTION_KEY is not set")
        if settings.SESSION_ENGINE != "django.contrib.sessions.backends.file":
            raise CommandError(f"Only the file session backend can be scanned, not {settings.SESSION_ENGINE}")

        engine = import_module(settings.SESSION_ENGINE)
        prefix = settings.SESSION_COOKIE_NAME
        total = 0
        updated = 0
        for filename in sorted(os.listdir(engine.SessionStore._get_storage_path())):
            if not filename.startswith(prefix):
                continue
            session = engine.SessionStore(session_key=filename[len(prefix):])
            total += 1
            changed = False
            for key in STORED_KEYS:
                value = session.get(key)
                if isinstance(value, str) and value and not is_encrypted(value):
                    session[key] = encrypt_value(value)
                    changed = True
            if changed:
                session.save()
                updated += 1
        self.stdout.write(self.style.SUCCESS(f"Scanned {total} sessions. Encrypted {updated}."))
