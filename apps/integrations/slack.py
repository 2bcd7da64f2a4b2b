"""
Slack Web API client.

Only the two methods the application needs are wrapped: ``users.list`` for
the member directory and ``chat.postMessage`` for direct messages.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from .conf import IntegrationSettings
from .exceptions import DirectoryFetchFailed, UpstreamServiceError
from .http import build_session, send_with_retry

logger = logging.getLogger(__name__)

SERVICE = 'slack'
PAGE_SIZE = 200
SLACKBOT_ID = 'USLACKBOT'


@dataclass(frozen=True)
class SlackMember:
    """A member of the Slack workspace, reduced to the fields we mirror."""

    id: str
    name: str
    username: str
    email: str
    picture_url: str
    is_bot: bool = False
    deleted: bool = False

    @classmethod
    def from_api(cls, payload: dict) -> 'SlackMember':
        profile = payload.get('profile') or {}
        name = (
            profile.get('real_name')
            or payload.get('real_name')
            or profile.get('display_name')
            or payload.get('name', '')
        )
        return cls(
            id=payload['id'],
            name=name,
            username=payload.get('name', ''),
            email=(profile.get('email') or '').strip(),
            picture_url=profile.get('image_512') or profile.get('image_192') or '',
            is_bot=bool(payload.get('is_bot')) or payload['id'] == SLACKBOT_ID,
            deleted=bool(payload.get('deleted')),
        )


class SlackClient:
    """Thin wrapper around the Slack Web API."""

    def __init__(self, conf: IntegrationSettings, session=None):
        self.conf = conf
        self.session = session or build_session()

    def _call(self, method, api_method, **kwargs):
        response = send_with_retry(
            self.session,
            method,
            f'{self.conf.slack_api_url}/{api_method}',
            service=SERVICE,
            timeout=self.conf.timeout_seconds,
            attempts=self.conf.max_retries + 1,
            headers={'Authorization': f'Bearer {self.conf.slack_bot_token}'},
            **kwargs
        )
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamServiceError(
                f'Slack {api_method} returned a non-JSON body', service=SERVICE
            ) from exc

    def list_members(self) -> List[SlackMember]:
        """
        Fetch every member of the workspace, following pagination cursors.

        Raises:
            DirectoryFetchFailed: If any page fails; no partial list is returned.
        """
        members = []
        cursor: Optional[str] = None
        page = 0
        while True:
            page += 1
            params = {'limit': PAGE_SIZE}
            if cursor:
                params['cursor'] = cursor
            try:
                body = self._call('GET', 'users.list', params=params)
            except UpstreamServiceError as exc:
                raise DirectoryFetchFailed(
                    f'Failed to fetch Slack users (page {page}): {exc}',
                    service=SERVICE,
                    status_code=exc.status_code,
                ) from exc

            if not body.get('ok') or body.get('members') is None:
                raise DirectoryFetchFailed(
                    f"Failed to fetch Slack users (page {page}): {body.get('error', 'no members')}",
                    service=SERVICE,
                )

            members.extend(SlackMember.from_api(item) for item in body['members'])
            cursor = (body.get('response_metadata') or {}).get('next_cursor') or None
            if not cursor:
                break

        logger.info('Fetched %d Slack members in %d page(s)', len(members), page)
        return members

    def post_message(self, channel: str, text: str) -> dict:
        """
        Send a message; ``channel`` may be a user id for a direct message.

        Raises:
            UpstreamServiceError: If Slack rejects the message.
        """
        body = self._call(
            'POST',
            'chat.postMessage',
            retry_on_status=False,
            json={'channel': channel, 'text': text, 'unfurl_links': False},
        )
        if not body.get('ok'):
            raise UpstreamServiceError(
                f"Slack chat.postMessage failed: {body.get('error', 'unknown error')}",
                service=SERVICE,
            )
        return body
