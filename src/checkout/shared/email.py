"""EmailAddress value object for the order's contact address."""

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import String

from checkout.domain import checkout


@checkout.value_object
class EmailAddress:
    """A syntactically valid email address.

    Structural checks only: exactly one @, non-empty local and domain parts,
    a dotted domain, no whitespace, no consecutive dots, no forbidden
    characters. Deliverability is not checked.
    """

    address: String(required=True, max_length=254)

    @invariant.post
    def verify_email_address(self):
        """Ensure that the email address follows a basic valid structure."""
        email = self.address

        if any(ch.isspace() for ch in email):
            raise ValidationError({"address": [f"Invalid email address: {email!r}"]})

        if email.count("@") != 1:
            raise ValidationError({"address": [f"Invalid email address: {email!r}"]})

        local_part, domain_part = email.split("@", 1)

        if not local_part or local_part.startswith(".") or local_part.endswith("."):
            raise ValidationError({"address": [f"Invalid email address: {email!r}"]})

        if not domain_part or domain_part.startswith(".") or domain_part.endswith("."):
            raise ValidationError({"address": [f"Invalid email address: {email!r}"]})

        if "." not in domain_part:
            raise ValidationError({"address": [f"Invalid email address: {email!r}"]})

        for label in domain_part.split("."):
            if not label or label.startswith("-") or label.endswith("-"):
                raise ValidationError({"address": [f"Invalid email address: {email!r}"]})

        if ".." in local_part:
            raise ValidationError({"address": [f"Invalid email address: {email!r}"]})

        for forbidden in (";", ",", "(", ")", '"', ":", "<", ">", "[", "]", "\\"):
            if forbidden in email:
                raise ValidationError({"address": [f"Invalid email address: {email!r}"]})
