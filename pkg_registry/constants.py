# releases can be changed (updated / deleted) only within this period after creation
RELEASE_EDIT_WINDOW_SECONDS = 3600
MESSAGE_UPDATE_EXPIRED = "can only modify a release up to one hour after creation"
MESSAGE_DELETE_EXPIRED = "can only delete a release up to one hour after creation"
# sizes of the storage columns
MAX_VERSION_LENGTH = 64
MAX_REQUIREMENT_LENGTH = 255
# name of the unique constraint for (package, version) pair of the release
UQ_RELEASE_VERSION = "uq_releases_package_version"
