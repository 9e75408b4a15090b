import concurrent.futures
import logging
import random
import time

from spamgate.audit.logger import AuditLogger, BackgroundAuditQueue
from spamgate.errors import ContentRejected, EnrichmentUnavailable
from spamgate.models.signal_bundle import ExternalVerdict
from spamgate.models.spam_settings import SettingsUpdate
from spamgate.models.submission import Submission
from spamgate.orchestrator.spam_check import SpamCheckPipeline
from spamgate.settings.store import SettingsStore
from spamgate.signals.collector import SignalCollector
from spamgate.signals.ip_hash import hash_ip
from spamgate.signals.providers import ReputationProvider, VerdictProvider
from spamgate.storage import InMemoryAuditStore, InMemorySettingsRepository

# Keep the console clean; degradations are counted below instead
logging.getLogger("spamgate").setLevel(logging.CRITICAL)

# Configuration
TOTAL_REQUESTS = 200
CONCURRENCY = 20
TIMEOUT_MS = 150

# Mock Data (Mixed realistic and junk)
SAMPLES = [
    "Thanks for the walkthrough, it fixed my build.",
    "Cheap pills at http://pills.example.biz and www.pills.example.biz/buy now!!!",
    "Ping me at someone@example.com if you want the config.",
    "See https://a.example.com https://b.example.com https://c.example.com",
    "   ",  # Empty string
    "<script>document.location='http://evil.example.com'</script>",
]


class FlakyScore(ReputationProvider):
    """Slow or failing on a fraction of calls, like a throttled upstream."""
    name = "flaky-recaptcha"

    def is_configured(self):
        return True

    def score(self, submission, timeout):
        roll = random.random()
        if roll < 0.1:
            raise EnrichmentUnavailable(self.name, "request_failed")
        if roll < 0.2:
            time.sleep(timeout * 2)
        return round(random.uniform(0.0, 1.0), 2)


class FlakyVerdict(VerdictProvider):
    name = "flaky-akismet"

    def is_configured(self):
        return True

    def verdict(self, submission, timeout):
        if random.random() < 0.1:
            time.sleep(timeout * 2)
        if "pills" in submission.content:
            return ExternalVerdict.SPAM
        return ExternalVerdict.HAM


audit_store = InMemoryAuditStore()
audit_logger = AuditLogger(BackgroundAuditQueue(audit_store))
settings_store = SettingsStore(InMemorySettingsRepository())
pipeline = SpamCheckPipeline(
    settings_store=settings_store,
    collector=SignalCollector(reputation=FlakyScore(), verdict=FlakyVerdict()),
    audit_logger=audit_logger,
)


def simulate_comment_request(req_id):
    """Simulates one single comment submission hitting the pipeline."""
    text = random.choice(SAMPLES)
    client_ip = f"203.0.113.{req_id % 250}"

    start = time.time()
    try:
        result = pipeline.check(Submission(content=text, ip_hash=hash_ip(client_ip, "stress")))
        return {
            "id": req_id,
            "status": "SUCCESS",
            "decision": result.decision.value,
            "degraded": result.enrichment_degraded,
            "latency": time.time() - start,
        }
    except ContentRejected:
        return {"id": req_id, "status": "REJECTED_INPUT", "latency": time.time() - start}
    except Exception as e:
        return {"id": req_id, "status": "FAIL", "error": repr(e)}


settings_store.update(SettingsUpdate(timeout_ms=TIMEOUT_MS))

print(f"--- STARTING STRESS TEST: {TOTAL_REQUESTS} Requests (Threads: {CONCURRENCY}) ---")
print("Simulating comment bursts with slow and failing enrichment providers...")

start_all = time.time()
results = []

with concurrent.futures.ThreadPoolExecutor(max_workers=CONCURRENCY) as executor:
    futures = [executor.submit(simulate_comment_request, i) for i in range(TOTAL_REQUESTS)]

    for future in concurrent.futures.as_completed(futures):
        res = future.result()
        results.append(res)

        # Visual feedback
        if res["status"] == "FAIL":
            print("X", end="", flush=True)
        elif res["status"] == "REJECTED_INPUT":
            print("-", end="", flush=True)
        elif res["degraded"]:
            print("!", end="", flush=True)  # Signal degraded
        else:
            print(".", end="", flush=True)

audit_logger.flush(timeout=10)

print("\n\n--- RESULTS ANALYSIS ---")
total_time = time.time() - start_all
successes = [r for r in results if r["status"] == "SUCCESS"]
rejected_input = [r for r in results if r["status"] == "REJECTED_INPUT"]
failures = [r for r in results if r["status"] == "FAIL"]
degraded = [r for r in successes if r["degraded"]]
worst_latency = max((r["latency"] for r in successes), default=0.0)

print(f"Total Time:      {total_time:.2f}s")
print(f"Throughput:      {TOTAL_REQUESTS / total_time:.2f} req/sec")
print(f"Decided:         {len(successes)}/{TOTAL_REQUESTS}")
for decision in ("allow", "hold", "reject"):
    print(f"  {decision:<14} {sum(1 for r in successes if r['decision'] == decision)}")
print(f"Input Rejected:  {len(rejected_input)} (Sanitizer)")
print(f"Degraded:        {len(degraded)} (Signal Dropped, Decision Still Made)")
print(f"Worst Latency:   {worst_latency * 1000:.0f}ms (timeout {TIMEOUT_MS}ms)")
print(f"Audit Entries:   {len(audit_store.list_entries(limit=TOTAL_REQUESTS))}")
print(f"System Crashes:  {len(failures)}")

if failures:
    print(f"First Failure: {failures[0]}")

audit_logger.close(timeout=5)
