# Services package.
#
#   listing_service: list/get/create/update/delete of listings and their
#                    images, with owner-or-admin checks and the comment
#                    cascade on delete
#   user_service:    registration of users
#
# Service functions take an AsyncSession as their first argument and only
# flush; the router's ``get_db`` dependency commits or rolls back.
