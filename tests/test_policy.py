"""
Authorization decisions are pure: no database needed.
"""
import pytest

from kaosekai.errors import ForbiddenError, NotFoundError
from kaosekai.models.character import Character
from kaosekai.models.document import Document
from kaosekai.models.party import Party
from kaosekai.models.post import Post
from kaosekai.models.user import UserRole
from kaosekai.services.policy import (
    DOCUMENT_CATALOG,
    USER_DIRECTORY,
    Action,
    Actor,
    Decision,
    PartyScope,
    authorize,
    enforce,
    is_allowed,
)

OWNER = Actor(id=1, role=UserRole.PLAYER)
MEMBER = Actor(id=2, role=UserRole.PLAYER)
OUTSIDER = Actor(id=3, role=UserRole.GM)
ADMIN = Actor(id=9, role=UserRole.ADMIN)


@pytest.fixture
def scope():
    party = Party(id=10, owner_id=OWNER.id, name="Table", description="", code="ABC123")
    return PartyScope(party=party, member_ids=frozenset({MEMBER.id}))


def _doc(is_wip):
    return Document(id=1, name="Core", version="1.0", cover_image="/c", pdf_file="/p", is_wip=is_wip)


class TestCharacters:

    def test_owner_only(self):
        sheet = Character(id=1, user_id=OWNER.id, name="Kael", data={})
        for action in (Action.VIEW, Action.UPDATE, Action.DELETE):
            assert authorize(OWNER, action, sheet) == Decision.ALLOW
            assert authorize(MEMBER, action, sheet) == Decision.DENY

    def test_admin_has_no_override(self):
        sheet = Character(id=1, user_id=OWNER.id, name="Kael", data={})
        assert authorize(ADMIN, Action.VIEW, sheet) == Decision.DENY


class TestParties:

    def test_view_and_post_for_owner_and_members(self, scope):
        for actor in (OWNER, MEMBER):
            assert is_allowed(actor, Action.VIEW, scope)
            assert is_allowed(actor, Action.CREATE, scope)
        assert not is_allowed(OUTSIDER, Action.VIEW, scope)
        assert not is_allowed(OUTSIDER, Action.CREATE, scope)

    def test_management_is_owner_only(self, scope):
        for action in (Action.UPDATE, Action.DELETE, Action.INVITE):
            assert is_allowed(OWNER, action, scope)
            assert not is_allowed(MEMBER, action, scope)
            assert not is_allowed(ADMIN, action, scope)


class TestPosts:

    def test_only_author_deletes(self):
        post = Post(id=1, party_id=10, user_id=MEMBER.id, text="hi", images=[])
        assert is_allowed(MEMBER, Action.DELETE, post)
        # the party owner is not a moderator
        assert not is_allowed(OWNER, Action.DELETE, post)


class TestDocuments:

    def test_public_view_hides_wip(self):
        assert is_allowed(None, Action.VIEW, _doc(False))
        assert not is_allowed(None, Action.VIEW, _doc(True))
        assert not is_allowed(ADMIN, Action.VIEW, _doc(True))

    def test_writes_need_admin(self):
        for action in (Action.CREATE, Action.UPDATE, Action.DELETE):
            assert is_allowed(ADMIN, action, _doc(False))
            assert not is_allowed(OWNER, action, _doc(False))
            assert not is_allowed(None, action, _doc(False))


class TestAdminSurfaces:

    @pytest.mark.parametrize("marker", [USER_DIRECTORY, DOCUMENT_CATALOG])
    def test_admin_only(self, marker):
        assert is_allowed(ADMIN, Action.MANAGE, marker)
        assert not is_allowed(OWNER, Action.MANAGE, marker)
        assert not is_allowed(None, Action.MANAGE, marker)


class TestEnforce:

    def test_forbidden_by_default(self, scope):
        with pytest.raises(ForbiddenError):
            enforce(OUTSIDER, Action.VIEW, scope)

    def test_conceal_turns_deny_into_not_found(self, scope):
        with pytest.raises(NotFoundError) as exc:
            enforce(OUTSIDER, Action.VIEW, scope, conceal=True, message="Party not found.")
        assert exc.value.message == "Party not found."

    def test_allow_returns_none(self, scope):
        assert enforce(OWNER, Action.DELETE, scope) is None
