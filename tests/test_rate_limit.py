"""Tests for the in-process upload rate limiter."""

from mms.services.rate_limit import UploadRateLimiter


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestUploadRateLimiter:
    """Sliding window behaviour"""

    def test_allows_up_to_limit_then_blocks(self):
        limiter = UploadRateLimiter(max_requests=3, window_seconds=60, clock=FakeClock())

        results = [limiter.hit("10.0.0.1") for _ in range(4)]

        assert [allowed for allowed, _ in results] == [True, True, True, False]
        assert results[-1][1] == 61

    def test_window_slides(self):
        clock = FakeClock()
        limiter = UploadRateLimiter(max_requests=2, window_seconds=60, clock=clock)
        limiter.hit("10.0.0.1")
        clock.now += 30
        limiter.hit("10.0.0.1")

        clock.now += 31
        allowed, retry_after = limiter.hit("10.0.0.1")

        assert allowed is True
        assert retry_after == 0

    def test_retry_after_counts_down_to_oldest_hit_expiry(self):
        clock = FakeClock()
        limiter = UploadRateLimiter(max_requests=1, window_seconds=900, clock=clock)
        limiter.hit("k")
        clock.now += 600

        allowed, retry_after = limiter.hit("k")

        assert allowed is False
        assert retry_after == 301

    def test_keys_are_independent(self):
        limiter = UploadRateLimiter(max_requests=1, window_seconds=60, clock=FakeClock())
        assert limiter.hit("a")[0] is True
        assert limiter.hit("b")[0] is True
        assert limiter.hit("a")[0] is False

    def test_reset_clears_all_keys(self):
        limiter = UploadRateLimiter(max_requests=1, window_seconds=60, clock=FakeClock())
        limiter.hit("a")
        limiter.reset()
        assert limiter.hit("a")[0] is True

    def test_idle_addresses_are_forgotten(self):
        clock = FakeClock()
        limiter = UploadRateLimiter(max_requests=5, window_seconds=60, clock=clock)
        for i in range(1000):
            limiter.hit(f"10.0.{i // 256}.{i % 256}")
        assert limiter.tracked_keys() == 1000

        clock.now += 61
        limiter.hit("192.168.1.1")

        assert limiter.tracked_keys() == 1

    def test_active_address_survives_sweep(self):
        clock = FakeClock()
        limiter = UploadRateLimiter(max_requests=2, window_seconds=60, clock=clock)
        limiter.hit("idle")
        clock.now += 30
        limiter.hit("busy")
        clock.now += 31
        limiter.hit("other")

        assert limiter.tracked_keys() == 2
        assert limiter.hit("busy")[0] is True
        assert limiter.hit("busy")[0] is False


class TestUploadRateLimitEndpoint:
    """429 from the document endpoints"""

    def test_upload_url_returns_429_with_retry_after(self, client, services, applicant_auth, verified_applicant):
        services.upload_limiter = UploadRateLimiter(max_requests=1, window_seconds=900)
        client.put("/applications/individual/draft", json={}, headers=applicant_auth)
        body = {"doc_type": "o_level_cert", "file_name": "cert.pdf", "mime_type": "application/pdf"}
        url = f"/applications/{verified_applicant.applicant_id}/documents/upload-url"

        first = client.post(url, json=body, headers=applicant_auth)
        second = client.post(url, json=body, headers=applicant_auth)

        assert first.status_code == 200
        assert second.status_code == 429
        assert second.json()["detail"]["code"] == "RATE_LIMITED"
        assert int(second.headers["Retry-After"]) > 0
