import google.generativeai as genai
from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from notes.gemini_client import generate_text, GenerationError


class Command(BaseCommand):
    help = "Check the Gemini API key: list models that can generate content and send a test prompt."

    def add_arguments(self, parser):
        parser.add_argument("--api-key", default="", help="Key to check instead of GEMINI_API_KEY")
        parser.add_argument("--skip-prompt", action="store_true", help="Only list the available models")

    def handle(self, *args, **options):
        api_key = options["api_key"] or settings.GEMINI_API_KEY
        if not api_key:
            raise CommandError("GEMINI_API_KEY environment variable not set. Pass --api-key or add it to .env")

        self.stdout.write(f"API key found: {api_key[:6]}...")
        genai.configure(api_key=api_key)
        try:
            available = [m.name for m in genai.list_models() if "generateContent" in m.supported_generation_methods]
        except Exception as e:
            raise CommandError(f"Could not list models: {e}")

        if not available:
            raise CommandError("No models support generateContent")
        for name in available:
            self.stdout.write(f"  Available: {name}")

        configured = settings.GEMINI_MODEL
        if not any(name.split("/")[-1] == configured for name in available):
            self.stdout.write(self.style.WARNING(f"Configured model {configured} is not in the list above"))

        if options["skip_prompt"]:
            return
        try:
            reply = generate_text("Say 'Hello, Gemini is working!' and nothing else.", api_key)
        except GenerationError as e:
            raise CommandError(f"Gemini API call failed: {e}")
        self.stdout.write(self.style.SUCCESS(f"Gemini responded using {configured}: {reply}"))
