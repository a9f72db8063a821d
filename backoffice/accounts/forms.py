from django import forms
from django.conf import settings
from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.core.files.uploadedfile import UploadedFile
from django.template.defaultfilters import filesizeformat

from .models import UserProfile, UserStatus
from .permission_matrix import SELECT_ALL, PermissionMatrix, permission_keys_of
from .roles import UserRole, assign_role, assignable_roles, role_of

User = get_user_model()


def field_name(key: str) -> str:
    """Form field name for a matrix key ("quiz.view_pack" -> "quiz__view_pack")."""
    return key.replace(".", "__")


def _email_taken(email, instance) -> bool:
    others = User.objects.exclude(pk=instance.pk) if instance.pk else User.objects.all()
    return others.filter(email__iexact=email).exists() or others.filter(username__iexact=email).exists()


class UserAdminForm(forms.ModelForm):
    """Create / edit form of the user resource.

    Profile data (status, avatar) and the role live outside ``auth.User``; they
    are written in ``_save_m2m`` so they land after the user row exists.
    """

    first_name = forms.CharField(min_length=2, max_length=25)
    last_name = forms.CharField(min_length=2, max_length=25)
    email = forms.EmailField(max_length=50)
    status = forms.ChoiceField(choices=UserStatus.choices, initial=UserStatus.ACTIVE)
    password = forms.CharField(
        min_length=8, required=False, strip=False, widget=forms.PasswordInput(render_value=False)
    )
    password_confirmation = forms.CharField(
        label="Password confirmation",
        min_length=8,
        required=False,
        strip=False,
        widget=forms.PasswordInput(render_value=False),
    )
    avatar = forms.ImageField(required=False)
    role = forms.ChoiceField(widget=forms.RadioSelect, initial=UserRole.CLIENT)

    password_required = False

    class Meta:
        model = User
        fields = ("first_name", "last_name", "email")

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        # construct_instance copies the raw field onto the model; keep the stored hash
        self._password_hash = self.instance.password
        self._trashed = False
        self.fields["role"].choices = assignable_roles()
        self.fields["password"].required = self.password_required
        self.fields["password_confirmation"].required = self.password_required
        if self.instance.pk:
            profile, _ = UserProfile.objects.get_or_create(user=self.instance)
            self.initial.setdefault("status", profile.status)
            self.initial.setdefault("avatar", profile.avatar)
            self.initial.setdefault("role", role_of(self.instance) or UserRole.CLIENT)
            self._trashed = profile.is_trashed

    def clean_email(self):
        email = self.cleaned_data["email"]
        if _email_taken(email, self.instance):
            raise forms.ValidationError("The email has already been taken.")
        return email

    def clean(self):
        cleaned = super().clean()
        password = cleaned.get("password")
        confirmation = cleaned.get("password_confirmation")
        if (password or confirmation) and password != confirmation:
            self.add_error("password", "The password field confirmation does not match.")
        return cleaned

    def save(self, commit=True):
        user = super().save(commit=False)
        user.username = user.email
        user.is_active = self.cleaned_data["status"] != UserStatus.BANNED and not self._trashed
        # Every role but client works in the back-office
        user.is_staff = self.cleaned_data["role"] != UserRole.CLIENT
        # Stored hashed, and only when filled
        if self.cleaned_data.get("password"):
            user.set_password(self.cleaned_data["password"])
        else:
            user.password = self._password_hash
        if commit:
            user.save()
            self._save_m2m()
        return user

    def _save_m2m(self):
        super()._save_m2m()
        profile, _ = UserProfile.objects.get_or_create(user=self.instance)
        profile.status = self.cleaned_data["status"]
        avatar = self.cleaned_data.get("avatar")
        if avatar is False:
            profile.avatar.delete(save=False)
            profile.avatar = None
        elif isinstance(avatar, UploadedFile):
            profile.avatar = avatar
        profile.save()

        role = self.cleaned_data["role"]
        if not profile.has_exact_role(role):
            assign_role(self.instance, role)


class UserCreationAdminForm(UserAdminForm):
    password_required = True


class ProfileForm(forms.Form):
    """The signed-in user's own profile page."""

    first_name = forms.CharField(max_length=50)
    last_name = forms.CharField(max_length=50)
    email = forms.EmailField()
    avatar = forms.ImageField(required=False)

    current_password = forms.CharField(
        required=False, strip=False, widget=forms.PasswordInput(render_value=False)
    )
    new_password = forms.CharField(
        required=False, strip=False, min_length=6, max_length=25,
        widget=forms.PasswordInput(render_value=False),
    )
    new_password_confirmation = forms.CharField(
        required=False, strip=False, widget=forms.PasswordInput(render_value=False)
    )

    general_fields = ("first_name", "last_name", "email", "avatar")
    password_fields = ("current_password", "new_password", "new_password_confirmation")

    def __init__(self, user, *args, **kwargs):
        self.user = user
        self.profile, _ = UserProfile.objects.get_or_create(user=user)
        kwargs.setdefault("initial", {
            "first_name": user.first_name,
            "last_name": user.last_name,
            "email": user.email,
            "avatar": self.profile.avatar,
        })
        super().__init__(*args, **kwargs)

    def general_section(self):
        return [self[name] for name in self.general_fields]

    def password_section(self):
        return [self[name] for name in self.password_fields]

    def clean_email(self):
        email = self.cleaned_data["email"]
        if _email_taken(email, self.user):
            raise forms.ValidationError("The email has already been taken.")
        return email

    def clean_avatar(self):
        avatar = self.cleaned_data.get("avatar")
        limit = settings.AVATAR_MAX_UPLOAD_SIZE
        if isinstance(avatar, UploadedFile) and avatar.size > limit:
            raise forms.ValidationError(f"The avatar may not be greater than {filesizeformat(limit)}.")
        return avatar

    def clean(self):
        cleaned = super().clean()
        current = cleaned.get("current_password")
        new = cleaned.get("new_password")
        confirmation = cleaned.get("new_password_confirmation")
        if "new_password" in self.errors:
            return cleaned
        if new:
            if not current:
                self.add_error("current_password", "The current password field is required when new password is present.")
            elif not self.user.check_password(current):
                self.add_error("current_password", "The password is incorrect.")
            if not confirmation:
                self.add_error("new_password_confirmation", "The new password confirmation field is required when new password is present.")
            elif new != confirmation:
                self.add_error("new_password", "The new password field confirmation does not match.")
        elif current and not self.user.check_password(current):
            self.add_error("current_password", "The password is incorrect.")
        return cleaned

    def save(self) -> bool:
        """Persist the profile; returns True when the password changed."""
        user = self.user
        user.first_name = self.cleaned_data["first_name"]
        user.last_name = self.cleaned_data["last_name"]
        user.email = self.cleaned_data["email"]
        password_changed = bool(self.cleaned_data.get("new_password"))
        if password_changed:
            user.set_password(self.cleaned_data["new_password"])
        user.save()

        avatar = self.cleaned_data.get("avatar")
        if avatar is False and self.profile.avatar:
            self.profile.avatar.delete(save=False)
            self.profile.avatar = None
            self.profile.save()
        elif isinstance(avatar, UploadedFile):
            if self.profile.avatar:
                self.profile.avatar.delete(save=False)
            self.profile.avatar = avatar
            self.profile.save()
        return password_changed


class RoleAdminForm(forms.ModelForm):
    """Role name plus one checkbox per matrix key.

    The checkboxes are built per request from ``layout`` (set by the admin);
    unchecked boxes are simply not persisted.
    """

    layout = None

    class Meta:
        model = Group
        fields = ("name",)

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        matrix = PermissionMatrix(self.layout)
        if self.instance.pk:
            matrix.hydrate(permission_keys_of(self.instance))

        self.fields[SELECT_ALL] = forms.BooleanField(
            required=False, label="Select all",
            help_text="Enable or disable all permissions for this role",
        )
        for resource in self.layout.resources:
            self.fields[field_name(resource.key)] = forms.BooleanField(
                required=False, label=resource.label,
            )
            for action, key in zip(("View", "Add", "Change", "Delete"), resource.permissions):
                self.fields[field_name(key)] = forms.BooleanField(required=False, label=action)
        for entity in self.layout.standalone:
            self.fields[field_name(entity.key)] = forms.BooleanField(required=False, label=entity.label)

        for key, value in matrix.state.items():
            self.initial.setdefault(field_name(key), value)
            self.fields[field_name(key)].widget.attrs["data-matrix-key"] = key

    def matrix(self) -> PermissionMatrix:
        state = {key: self.cleaned_data.get(field_name(key), False) for key in self.layout.keys()}
        aggregates = [SELECT_ALL] + [resource.key for resource in self.layout.resources]
        changed = [key for key in aggregates if field_name(key) in self.changed_data]
        matrix = PermissionMatrix(self.layout, state)
        matrix.resolve(changed)
        return matrix

    def granted_permissions(self) -> set:
        return self.matrix().granted()
