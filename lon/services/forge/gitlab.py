"""GitLab 客户端 - 合并请求的查找 / 更新 / 创建

标签随合并请求一起以逗号拼接提交；目标分支来自 CI_DEFAULT_BRANCH。
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

from lon.core.config import ForgeSettings
from lon.services.forge.base import GitBackedForge
from lon.services.forge.commits import CommitLister
from lon.services.forge.publisher import GitPublisher
from lon.utils.http import HttpClient, json_field, send_json

logger = logging.getLogger(__name__)


class GitLabForge(GitBackedForge):
    name = "gitlab"

    def __init__(
        self,
        settings: ForgeSettings,
        token: str,
        http: HttpClient,
        publisher: GitPublisher,
        lister: CommitLister,
    ) -> None:
        super().__init__(publisher, lister)
        self.http = http
        self.default_branch = settings.default_branch
        self.project_url = f"{settings.api_url}/projects/{quote(settings.project_id, safe='')}"
        self._headers = {"Authorization": f"Bearer {token}"}

    def _call(self, method: str, url: str, context: str, body: object = None) -> Any:
        return send_json(
            self.http, method, url, headers=self._headers, json_body=body, context=context,
        )

    def open_or_update_request(self, title: str, body: str, labels: tuple[str, ...]) -> str:
        mr_url = f"{self.project_url}/merge_requests"
        branch = quote(self.branch, safe="")
        existing = self._call(
            "GET", f"{mr_url}?source_branch={branch}&state=opened", "查找已有合并请求",
        )
        payload: dict[str, object] = {"title": title, "description": body}
        if labels:
            payload["labels"] = ",".join(labels)

        if isinstance(existing, list) and existing:
            iid = json_field(existing[0], "iid", "查找已有合并请求")
            mr = self._call("PUT", f"{mr_url}/{iid}", "更新合并请求", payload)
            logger.info("已更新合并请求 !%s", iid)
        else:
            payload.update({
                "source_branch": self.branch,
                "target_branch": self.default_branch,
                "remove_source_branch": True,
                "allow_collaboration": True,
            })
            mr = self._call("POST", mr_url, "创建合并请求", payload)
            logger.info("已创建合并请求 !%s", json_field(mr, "iid", "创建合并请求"))
        return json_field(mr, "web_url", "合并请求")
