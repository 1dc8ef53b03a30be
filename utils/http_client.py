"""HTTP client with retries and timeouts."""
import time
import logging
import requests

logger = logging.getLogger("microgrid.http")


class APIError(Exception):
    """API request error with status code and response body."""
    def __init__(self, message, status_code=None, response_body=None, source=None):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body
        self.source = source


def _retry_after(header, default):
    """Seconds from a Retry-After header; HTTP-date or junk values fall back to ``default``."""
    try:
        return min(max(0.0, float(header)), 60.0)
    except (TypeError, ValueError):
        return default


class HTTPClient:
    """HTTP client for the language model and SMS gateways.

    Retries 429/5xx with exponential backoff, fails fast on other 4xx.
    """

    RETRYABLE_STATUS = {429, 500, 502, 503, 504}
    NON_RETRYABLE_STATUS = {400, 401, 403, 404, 422}

    def __init__(self, base_url, timeout=30, max_retries=3, headers=None, auth=None, source=None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.source = source
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": "MicrogridMonitor/1.0"})
        if headers:
            self.session.headers.update(headers)
        if auth:
            self.session.auth = auth

    def post(self, path="", json=None, data=None):
        """Make a POST request with a JSON or form body."""
        return self._request("POST", path, json_body=json, form=data)

    def _request(self, method, path, json_body=None, form=None):
        url = f"{self.base_url}/{path.lstrip('/')}" if path else self.base_url
        last_error = None
        for attempt in range(self.max_retries + 1):
            try:
                start = time.time()
                resp = self.session.request(method, url, json=json_body, data=form,
                                            timeout=self.timeout)
                latency = int((time.time() - start) * 1000)
                logger.debug(f"{method} {url} → {resp.status_code} ({latency}ms)")

                if 200 <= resp.status_code < 300:
                    try:
                        data = resp.json()
                    except ValueError:
                        data = resp.text
                    return data

                if resp.status_code in self.NON_RETRYABLE_STATUS:
                    raise APIError(
                        f"HTTP {resp.status_code} from {url}",
                        status_code=resp.status_code,
                        response_body=resp.text,
                        source=self.source,
                    )

                if resp.status_code in self.RETRYABLE_STATUS:
                    last_error = APIError(f"HTTP {resp.status_code}", status_code=resp.status_code,
                                          source=self.source)
                    if attempt >= self.max_retries:
                        break
                    wait = _retry_after(resp.headers.get("Retry-After"), min(2 ** attempt * 2, 60))
                    logger.warning(f"Retryable {resp.status_code} from {url}, waiting {wait:.1f}s (attempt {attempt + 1})")
                    time.sleep(wait)
                    continue

                raise APIError(f"Unexpected HTTP {resp.status_code}", status_code=resp.status_code,
                               source=self.source)

            except requests.exceptions.RequestException as e:
                logger.warning(f"Request error for {url}: {e} (attempt {attempt + 1})")
                last_error = e
                if attempt < self.max_retries:
                    time.sleep(min(2 ** attempt * 2, 60))

        raise last_error or APIError(f"Max retries exceeded for {url}", source=self.source)
