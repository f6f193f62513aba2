"""Session context: who is calling and on behalf of which company.

Authentication itself happens upstream; this service only forwards the
caller's bearer token to the backend and reads the active company from the
Django session (or the ``X-Company-Id`` header for API clients).
"""

from dataclasses import dataclass, field


SESSION_TOKEN_KEY = 'token'
SESSION_COMPANY_KEY = 'company'


@dataclass
class SessionContext:
    token: str | None = None
    company: dict = field(default_factory=dict)

    @property
    def company_id(self):
        value = self.company.get('id') if self.company else None
        return str(value) if value not in (None, '') else None

    @classmethod
    def from_request(cls, request):
        token = None
        auth = request.headers.get('Authorization') or ''
        if auth.lower().startswith('bearer '):
            token = auth[7:].strip() or None
        session = getattr(request, 'session', None)
        if token is None and session is not None:
            token = session.get(SESSION_TOKEN_KEY)

        company = {}
        if session is not None and isinstance(session.get(SESSION_COMPANY_KEY), dict):
            company = dict(session[SESSION_COMPANY_KEY])
        header_company = request.headers.get('X-Company-Id')
        if header_company and str(company.get('id') or '') != header_company:
            company = {'id': header_company}
        return cls(token=token, company=company)
