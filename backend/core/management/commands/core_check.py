import json

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from core.views import check_db, check_caches


class Command(BaseCommand):
    help = "Run internal health checks (DB, caches) and print a summary for CI/CD pipelines."

    def add_arguments(self, parser):
        parser.add_argument("--db", action="store_true", help="Check database connectivity")
        parser.add_argument("--cache", action="store_true", help="Check every configured cache alias")
        parser.add_argument("--json", action="store_true", help="Output as JSON (default is pretty text)")

    def handle(self, *args, **opts):
        results = {
            "time": timezone.now().isoformat(),
            "env": settings.APP_ENV,
            "debug": bool(settings.DEBUG),
            "ok": True,
            "checks": {},
        }

        if opts.get("db"):
            results["checks"]["db"] = check_db()

        if opts.get("cache"):
            for alias, res in check_caches().items():
                results["checks"][f"cache:{alias}"] = res

        results["ok"] = all(c["ok"] for c in results["checks"].values())

        if opts.get("json"):
            self.stdout.write(json.dumps(results, indent=2))
        else:
            self.stdout.write(f"\n=== Vitrina Core Health Check ({results['time']}) ===\n")
            self.stdout.write(f"Environment: {results['env']} | Debug={results['debug']}\n\n")
            for key, val in results["checks"].items():
                mark = "OK  " if val.get("ok") else "FAIL"
                err = f" ({val.get('error')})" if val.get("error") else ""
                self.stdout.write(f" [{mark}] {key.upper()}{err}\n")
            self.stdout.write(f"\nOverall: {'OK' if results['ok'] else 'FAILED'}\n")

        if not results["ok"]:
            raise CommandError("health checks failed")
