"""
Tests for FixtureTap Type Registry
"""

from dataclasses import dataclass

import pytest

from fixturetap.registry.types import TypeRegistry

from sample_service import GetUser, ListUsers, User


@dataclass
class NeedsId:
    id: int


class TestTypeRegistry:
    """Test TypeRegistry construction and lookup."""

    def test_classes_become_prototypes(self):
        """Dataclass classes are instantiated with defaults."""
        types = TypeRegistry({'GetUser': GetUser})

        assert types.get('GetUser') == GetUser()
        assert 'GetUser' in types
        assert len(types) == 1

    def test_instances_kept(self):
        """Prototype instances are used as given."""
        prototype = GetUser(name='anonymous')
        types = TypeRegistry({'GetUser': prototype})

        assert types.get('GetUser') is prototype

    def test_from_types(self):
        """from_types keys entries by class name."""
        types = TypeRegistry.from_types([GetUser, ListUsers])

        assert types.names() == ['GetUser', 'ListUsers']

    def test_rejects_non_dataclass(self):
        """Only dataclasses can be response types."""
        with pytest.raises(TypeError):
            TypeRegistry({'Plain': dict})
        with pytest.raises(TypeError):
            TypeRegistry({'Plain': {'id': 1}})

    def test_rejects_class_without_defaults(self):
        """Classes with required fields need a prototype instance."""
        with pytest.raises(TypeError, match='register a prototype instance'):
            TypeRegistry({'NeedsId': NeedsId})

        assert TypeRegistry({'NeedsId': NeedsId(id=0)}).get('NeedsId') == NeedsId(id=0)

    def test_rejects_empty_name(self):
        """Type names must be non-empty strings."""
        with pytest.raises(ValueError):
            TypeRegistry({'': GetUser})

    def test_missing(self):
        """missing lists unregistered names, sorted and unique."""
        types = TypeRegistry({'GetUser': GetUser})

        assert types.missing(['Ghost', 'GetUser', 'Alpha', 'Ghost']) == ['Alpha', 'Ghost']

    def test_to_dict(self):
        """to_dict names the class behind each type."""
        types = TypeRegistry({'GetUser': GetUser})

        assert types.to_dict() == {'GetUser': 'sample_service.GetUser'}

    def test_immutable(self):
        """The table cannot be changed after construction."""
        types = TypeRegistry({'GetUser': GetUser})

        with pytest.raises(TypeError):
            types._prototypes['Ghost'] = GetUser()


class TestMaterialize:
    """Test TypeRegistry.materialize."""

    def test_materialize(self):
        """Artifact data decodes into the registered type."""
        types = TypeRegistry({'GetUser': GetUser})

        assert types.materialize('GetUser', b'{"id": 42, "name": "Ada"}') == GetUser(id=42, name='Ada')

    def test_fresh_instances(self):
        """Each call returns a new object, never the prototype."""
        types = TypeRegistry({'User': User})

        first = types.materialize('User', '{"id": 1}')
        second = types.materialize('User', '{"id": 1}')
        first.tags.append('changed')

        assert first is not second
        assert second.tags == []
        assert types.get('User') == User()

    def test_unknown_type(self):
        """Unregistered names raise KeyError."""
        with pytest.raises(KeyError):
            TypeRegistry({}).materialize('Ghost', '{}')

    def test_schema_mismatch(self):
        """Mismatched data raises ValueError."""
        with pytest.raises(ValueError):
            TypeRegistry({'GetUser': GetUser}).materialize('GetUser', '{"id": "forty-two"}')
