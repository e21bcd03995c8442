"""Instance profile handling for role deletion.

IAM refuses to delete a role that is still part of an instance profile,
so the role is removed from every profile it belongs to first.
"""

import logging
from typing import List

from botocore.exceptions import ClientError

from rolesync.lifecycle.base import IAMComponent
from rolesync.utils.aws_client import error_code

logger = logging.getLogger(__name__)


class InstanceProfileManager(IAMComponent):
    """Lists and detaches the instance profiles that contain a role."""

    def list_instance_profiles(self, role_name: str) -> List[str]:
        """Return the names of the instance profiles containing the role.

        A role that no longer exists belongs to no profile.
        """
        try:
            profiles = self._paginate(
                "ListInstanceProfilesForRole",
                "list_instance_profiles_for_role",
                "InstanceProfiles",
                role_name,
                RoleName=role_name,
            )
        except ClientError as e:
            if error_code(e) == "NoSuchEntity":
                return []
            raise
        return [profile["InstanceProfileName"] for profile in profiles]

    def remove_role_from_instance_profiles(self, role_name: str) -> List[str]:
        """Remove the role from every instance profile it belongs to.

        Profiles that disappear in the meantime are skipped. Any other
        error stops the removal and propagates.

        Returns:
            Names of the profiles the role was removed from
        """
        removed = []
        for profile_name in self.list_instance_profiles(role_name):
            logger.info(f"Removing role {role_name} from instance profile {profile_name}")
            try:
                self._call(
                    "RemoveRoleFromInstanceProfile",
                    "remove_role_from_instance_profile",
                    role_name,
                    InstanceProfileName=profile_name,
                    RoleName=role_name,
                )
            except ClientError as e:
                if error_code(e) == "NoSuchEntity":
                    logger.info(f"Instance profile {profile_name} already gone")
                    continue
                raise
            removed.append(profile_name)
        return removed
