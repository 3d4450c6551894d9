from __future__ import annotations

import requests

from dynamicprobe.checks.base import Check, register_check, require_match
from dynamicprobe.config import settings
from dynamicprobe.deadline import Deadline
from dynamicprobe.errors import ProbeFailure
from dynamicprobe.models import HTTPDefinition


@register_check
class HTTPCheck(Check[HTTPDefinition]):
    check_type = "http"
    definition_model = HTTPDefinition
    required_fields = ("url",)

    def probe(self, scope: Deadline) -> str:
        d = self.definition
        timeout_s = scope.timeout(settings.HTTP_DEFAULT_TIMEOUT_S)
        session = requests.Session()
        unregister = scope.on_cancel(session.close)
        try:
            r = session.request(d.method, d.url, timeout=timeout_s, verify=d.verify)
        except requests.RequestException as e:
            raise ProbeFailure(f"Error making request to {d.url}: {e}") from e
        finally:
            unregister()
            session.close()

        if r.status_code != d.expected_status:
            raise ProbeFailure(
                f"Received status code {r.status_code} from {d.url}, "
                f"expected {d.expected_status}"
            )
        if not d.match_content:
            return f"{d.method} {d.url} returned {r.status_code}"

        require_match(d.content_regex, r.text)
        return f"Matching content found in response from {d.url}"
