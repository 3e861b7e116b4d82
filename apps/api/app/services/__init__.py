from app.services.s3_storage import (
    S3UploadStorage,
    UploadStorage,
    create_s3_client,
    delete_object,
    generate_presigned_get_url,
    get_object_size,
)
from app.services.upload_signer import SigningResult, sign_policy, sign_rest_request, sign_upload_request
from app.services.upload_signing import (
    CredentialScope,
    build_v4_rest_string_to_sign,
    derive_v4_signing_key,
    hash_canonical_request,
    parse_credential_scope,
    sign_legacy,
    sign_v4,
)
from app.services.upload_validation import decode_conditions, is_policy_valid, is_valid_rest_request
from app.services.upload_verifier import (
    VerifiedUpload,
    delete_uploaded_file,
    is_viewable_image,
    should_include_thumbnail,
    verify_uploaded_file,
)

__all__ = [
    "S3UploadStorage",
    "UploadStorage",
    "create_s3_client",
    "delete_object",
    "generate_presigned_get_url",
    "get_object_size",
    "SigningResult",
    "sign_policy",
    "sign_rest_request",
    "sign_upload_request",
    "CredentialScope",
    "build_v4_rest_string_to_sign",
    "derive_v4_signing_key",
    "hash_canonical_request",
    "parse_credential_scope",
    "sign_legacy",
    "sign_v4",
    "decode_conditions",
    "is_policy_valid",
    "is_valid_rest_request",
    "VerifiedUpload",
    "delete_uploaded_file",
    "is_viewable_image",
    "should_include_thumbnail",
    "verify_uploaded_file",
]
