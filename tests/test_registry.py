"""
Tests for FixtureTap Response Registry

Tests request resolution including:
- Loading (lazy, strict)
- Lookup correctness and the error taxonomy
- Cache reuse without further artifact reads
- Isolation between returned responses
- Concurrent callers
"""

import json
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import patch

import pytest

from fixturetap.registry import (
    ResponseRegistry,
    load_registry,
    fingerprint,
    LoadError,
    NotFoundError,
    UnknownTypeError,
    ReadError,
    DecodeError,
    RegistryError
)

from sample_service import GetUser, GetUserRequest, ListUsers, ListUsersRequest, Role, User


ADA = GetUserRequest(id=42)
GRACE = GetUserRequest(id=7)
GHOST = GetUserRequest(id=13)
BROKEN = GetUserRequest(id=500)
MISSING_FILE = GetUserRequest(id=404)
LIST = ListUsersRequest(page_size=2)


@pytest.fixture
def fixture_dir(tmp_path):
    """Fixture directory with a mapping file and response artifacts."""
    responses = tmp_path / 'responses'
    (responses / 'users').mkdir(parents=True)

    (responses / 'GetUser.json').write_text(json.dumps({'id': 42, 'name': 'Ada'}))
    (responses / 'users' / 'grace.json').write_text(json.dumps({'id': 7, 'name': 'Grace'}))
    (responses / 'Ghost.json').write_text('{}')
    (responses / 'broken').mkdir()
    (responses / 'broken' / 'GetUser.json').write_text('{"id": "not a number"}')
    (responses / 'ListUsers.json').write_text(json.dumps({
        'users': [{'id': 1, 'name': 'Ada', 'role': 'admin'}, {'id': 2, 'name': 'Grace'}],
        'nextPageToken': 'p2'
    }))

    mapping = {
        fingerprint(ADA): 'GetUser.json',
        fingerprint(GRACE): {'artifact': 'users/grace.json', 'type': 'GetUser'},
        fingerprint(GHOST): 'Ghost.json',
        fingerprint(BROKEN): 'broken/GetUser.json',
        fingerprint(MISSING_FILE): 'users/GetUser.json',
        fingerprint(LIST): 'ListUsers.json',
    }
    mapping_path = tmp_path / 'mapping.json'
    mapping_path.write_text(json.dumps(mapping))

    return tmp_path


@pytest.fixture
def registry(fixture_dir):
    """Registry over fixture_dir."""
    return ResponseRegistry.load(
        fixture_dir / 'mapping.json',
        fixture_dir / 'responses',
        {'GetUser': GetUser, 'ListUsers': ListUsers}
    )


class TestLoad:
    """Test registry loading."""

    def test_load_reads_no_artifacts(self, fixture_dir):
        """Only the mapping file is read at load time."""
        with patch('fixturetap.registry.store.ArtifactStore.read') as read:
            registry = load_registry(fixture_dir / 'mapping.json', fixture_dir / 'responses', {'GetUser': GetUser})

        read.assert_not_called()
        assert len(registry.mapping) == 6

    def test_missing_mapping_file(self, tmp_path):
        """A missing mapping file is a LoadError."""
        with pytest.raises(LoadError):
            ResponseRegistry.load(tmp_path / 'nope.json', tmp_path, {'GetUser': GetUser})

    def test_malformed_mapping_file(self, tmp_path):
        """A malformed mapping file is a LoadError."""
        path = tmp_path / 'mapping.json'
        path.write_text('{"a": ["b"]}')

        with pytest.raises(LoadError):
            ResponseRegistry.load(path, tmp_path, {'GetUser': GetUser})

    def test_gaps_surface_lazily(self, fixture_dir):
        """Without strict, unregistered types are accepted at load time."""
        registry = ResponseRegistry.load(fixture_dir / 'mapping.json', fixture_dir / 'responses', {})

        assert len(registry.types) == 0

    def test_strict_reports_unregistered_types(self, fixture_dir):
        """With strict, unregistered types fail the load."""
        with pytest.raises(LoadError, match='Ghost'):
            ResponseRegistry.load(
                fixture_dir / 'mapping.json',
                fixture_dir / 'responses',
                {'GetUser': GetUser, 'ListUsers': ListUsers},
                strict=True
            )

    def test_strict_passes_when_covered(self, fixture_dir):
        """Strict load succeeds when every type is registered."""
        registry = ResponseRegistry.load(
            fixture_dir / 'mapping.json',
            fixture_dir / 'responses',
            {'GetUser': GetUser, 'ListUsers': ListUsers, 'Ghost': GetUser},
            strict=True
        )

        assert 'Ghost' in registry.types


class TestGetResponse:
    """Test ResponseRegistry.get_response."""

    def test_lookup_correctness(self, registry):
        """A mapped request returns the artifact decoded as its type."""
        response = registry.get_response(GetUserRequest(id=42))

        assert isinstance(response, GetUser)
        assert response == GetUser(id=42, name='Ada')

    def test_explicit_type_entry(self, registry):
        """Explicit entry types are used instead of the file name."""
        assert registry.get_response(GRACE) == GetUser(id=7, name='Grace')

    def test_nested_response(self, registry):
        """Nested messages, enums and camelCase keys decode."""
        response = registry.get_response(LIST)

        assert response.users[0] == User(id=1, name='Ada', role=Role.ADMIN)
        assert response.users[1].role == Role.MEMBER
        assert response.next_page_token == 'p2'
        assert response.total is None

    def test_explicit_default_matches(self, registry):
        """Spelling out a default value hits the same fixture."""
        assert registry.get_response(GetUserRequest(id=42, include_groups=False)) == GetUser(id=42, name='Ada')

    def test_not_found_without_io(self, registry):
        """Unmapped requests fail with NotFoundError and read nothing."""
        request = GetUserRequest(id=99)

        with patch.object(registry.store, 'read') as read:
            with pytest.raises(NotFoundError) as exc_info:
                registry.get_response(request)

        read.assert_not_called()
        assert exc_info.value.fingerprint == fingerprint(request)

    def test_unknown_type(self, registry):
        """Artifacts whose type is not registered fail with UnknownTypeError."""
        with pytest.raises(UnknownTypeError) as exc_info:
            registry.get_response(GHOST)

        assert exc_info.value.type_name == 'Ghost'
        assert exc_info.value.artifact == 'Ghost.json'

    def test_read_error(self, registry):
        """Unreadable artifacts fail with ReadError."""
        with pytest.raises(ReadError) as exc_info:
            registry.get_response(MISSING_FILE)

        assert exc_info.value.artifact == 'users/GetUser.json'
        assert isinstance(exc_info.value.cause, OSError)
        assert isinstance(exc_info.value.__cause__, OSError)

    def test_decode_error(self, registry):
        """Artifacts not matching the schema fail with DecodeError."""
        with pytest.raises(DecodeError) as exc_info:
            registry.get_response(BROKEN)

        assert exc_info.value.artifact == 'broken/GetUser.json'
        assert 'id' in str(exc_info.value)

    def test_errors_share_base_class(self, registry):
        """All per-call failures are RegistryErrors."""
        with pytest.raises(RegistryError):
            registry.get_response(GetUserRequest(id=99))

    def test_failures_not_cached(self, registry):
        """Failed resolutions leave no cache entry."""
        with pytest.raises(DecodeError):
            registry.get_response(BROKEN)

        assert len(registry.cache) == 0

    def test_empty_artifact_is_not_an_error(self, fixture_dir):
        """An artifact without fields decodes to the type's defaults."""
        registry = ResponseRegistry.load(
            fixture_dir / 'mapping.json',
            fixture_dir / 'responses',
            {'Ghost': GetUser}
        )

        assert registry.get_response(GHOST) == GetUser()

    def test_non_message_request(self, registry):
        """Requests must be dataclass messages."""
        with pytest.raises(TypeError):
            registry.get_response({'id': 42})

    def test_get_response_by_fingerprint(self, registry):
        """Raw fingerprints resolve like requests."""
        assert registry.get_response_by_fingerprint(fingerprint(ADA)) == GetUser(id=42, name='Ada')


class TestCaching:
    """Test response caching behavior."""

    def test_second_call_reads_nothing(self, registry):
        """Fingerprint-equal requests reuse the cached response."""
        first = registry.get_response(GetUserRequest(id=42))
        second = registry.get_response(GetUserRequest(id=42, include_groups=False))

        assert first == second
        assert registry.store.read_count == 1
        assert registry.cache.stats().hits == 1

    def test_prototype_not_mutated(self, fixture_dir):
        """Decoding never writes into the registered prototype."""
        prototype = GetUser(name='anonymous')
        registry = ResponseRegistry.load(
            fixture_dir / 'mapping.json',
            fixture_dir / 'responses',
            {'GetUser': prototype}
        )

        registry.get_response(ADA)

        assert prototype == GetUser(name='anonymous')

    def test_caller_mutation_not_observed_by_other_decodes(self, registry):
        """A caller modifying one response does not affect another decode of the same artifact."""
        first = registry.get_response(ADA)
        first.name = 'changed'

        registry.cache.clear()
        second = registry.get_response(ADA)

        assert second.name == 'Ada'
        assert second is not first

    def test_distinct_requests_same_artifact(self, fixture_dir):
        """Two fingerprints mapped to one artifact get independent instances."""
        other = GetUserRequest(id=43)
        mapping_path = fixture_dir / 'mapping.json'
        mapping = json.loads(mapping_path.read_text())
        mapping[fingerprint(other)] = 'GetUser.json'
        mapping_path.write_text(json.dumps(mapping))
        registry = ResponseRegistry.load(mapping_path, fixture_dir / 'responses', {'GetUser': GetUser})

        first = registry.get_response(ADA)
        first.name = 'changed'
        second = registry.get_response(other)

        assert second.name == 'Ada'
        assert registry.store.read_count == 2


class TestConcurrency:
    """Test concurrent callers."""

    def test_concurrent_get_response(self, registry):
        """Many threads resolving the same and different requests all succeed."""
        requests = [ADA, GRACE, LIST] * 50

        with ThreadPoolExecutor(max_workers=16) as pool:
            results = list(pool.map(registry.get_response, requests))

        assert all(r == GetUser(id=42, name='Ada') for r in results[0::3])
        assert all(r == GetUser(id=7, name='Grace') for r in results[1::3])
        assert all(isinstance(r, ListUsers) for r in results[2::3])
        assert len(registry.cache) == 3
        # Racing misses may duplicate reads, but never more than once per call
        assert 3 <= registry.store.read_count <= len(requests)


class TestConcreteScenario:
    """The GetUser example end to end."""

    def test_get_user_scenario(self, tmp_path):
        """One mapped request resolves; any other is NotFoundError."""
        request = GetUserRequest(id=42)
        responses = tmp_path / 'responses'
        responses.mkdir()
        (responses / 'GetUser.json').write_text('{"id": 42, "name": "Ada"}')
        (tmp_path / 'mapping.json').write_text(json.dumps({fingerprint(request): 'GetUser.json'}))

        registry = load_registry(tmp_path / 'mapping.json', responses, {'GetUser': GetUser})

        assert registry.get_response(request) == GetUser(id=42, name='Ada')
        with pytest.raises(NotFoundError):
            registry.get_response(GetUserRequest(id=41))
