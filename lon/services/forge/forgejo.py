"""Forgejo 客户端 - 接口与 GitHub 相近，鉴权头为 `token <令牌>`"""

from __future__ import annotations

import logging
from typing import Any

from lon.core.config import ForgeSettings
from lon.services.forge.base import GitBackedForge
from lon.services.forge.commits import CommitLister
from lon.services.forge.publisher import GitPublisher
from lon.utils.http import HttpClient, json_field, send_json

logger = logging.getLogger(__name__)


class ForgejoForge(GitBackedForge):
    name = "forgejo"

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
        self.repo_url = f"{settings.api_url}/repos/{settings.repository}"
        self._headers = {"Authorization": f"token {token}", "Accept": "application/json"}

    def _call(self, method: str, url: str, context: str, body: object = None) -> Any:
        return send_json(
            self.http, method, url, headers=self._headers, json_body=body, context=context,
        )

    def _find_open(self) -> dict | None:
        pulls = self._call("GET", f"{self.repo_url}/pulls?state=open", "查找已有拉取请求")
        for pr in pulls if isinstance(pulls, list) else []:
            if not isinstance(pr, dict):
                continue
            head = pr.get("head")
            if isinstance(head, dict) and head.get("ref") == self.branch:
                return pr
        return None

    def open_or_update_request(self, title: str, body: str, labels: tuple[str, ...]) -> str:
        repo = self._call("GET", self.repo_url, "读取仓库信息")
        base = json_field(repo, "default_branch", "读取仓库信息")

        existing = self._find_open()
        if existing is not None:
            number = json_field(existing, "number", "查找已有拉取请求")
            pr = self._call(
                "PATCH", f"{self.repo_url}/pulls/{number}", "更新拉取请求",
                {"title": title, "body": body},
            )
            logger.info("已更新拉取请求 #%s", number)
        else:
            pr = self._call(
                "POST", f"{self.repo_url}/pulls", "创建拉取请求",
                {"head": self.branch, "base": base, "title": title, "body": body},
            )
            number = json_field(pr, "number", "创建拉取请求")
            logger.info("已创建拉取请求 #%s", number)

        if labels:
            self._call(
                "POST", f"{self.repo_url}/issues/{number}/labels", "添加标签",
                {"labels": list(labels)},
            )
        return json_field(pr, "html_url", "拉取请求")
