"""Policies tying a companion's lifecycle to its parent."""

from .errors import PolicyError


class BindingPolicy:
    """How a companion is removed once its parent is gone.

    Subclasses decide whether the reconciler deletes the companion itself
    or leaves it to the garbage collector through an owner reference.
    """

    name = "base"
    deletes_on_parent_absent = False

    def owner_references(self, parent_kind, parent):
        """Owner references to set on a new companion, or None."""
        return None

    def __repr__(self):
        return f"{self.__class__.__name__}()"


class ExplicitBinding(BindingPolicy):
    """The reconciler deletes the companion when the parent is not found."""

    name = "explicit"
    deletes_on_parent_absent = True


class OwnedBinding(BindingPolicy):
    """The companion is owned by the parent and garbage collected with it."""

    name = "owned"
    deletes_on_parent_absent = False

    def owner_references(self, parent_kind, parent):
        metadata = getattr(parent, "metadata", None)
        name = getattr(metadata, "name", None)
        uid = getattr(metadata, "uid", None)
        if not name or not uid:
            raise PolicyError(
                f"Cannot set owner reference: {parent_kind.kind} has no name or uid"
            )

        return [
            {
                "apiVersion": parent_kind.api_version,
                "kind": parent_kind.kind,
                "name": name,
                "uid": uid,
                "controller": True,
                "blockOwnerDeletion": True,
            }
        ]
